"""
Setup configuration for the Chord Voicing Generator package.

This allows you to install the project with:
    pip install -e .

After installation, you can import modules like:
    from chord_voicer.rules.generate_voicings import generate_voicings
    from chord_voicer.rules.chords import resolve_chord

and run the command-line tool:
    voicing-gen Cmaj7 --lesson
"""

from setuptools import setup, find_packages

# Read the README for long description
with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    # -------------------------
    # Basic Package Information
    # -------------------------
    name="chord-voicing-gen",
    version="0.1.0",
    description="Playable chord voicings for guitar, bass and keyboard from chord symbols and plain-language constraints",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # -------------------------
    # Package Discovery
    # -------------------------
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    package_dir={"": "."},
    # The instrument capability table ships with the code
    package_data={"chord_voicer.data": ["instruments.yaml"]},
    include_package_data=True,

    # -------------------------
    # Python Version Requirement
    # -------------------------
    python_requires=">=3.9",

    # -------------------------
    # Dependencies
    # -------------------------
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
    ],

    # Optional dependencies (install with pip install -e ".[dev]")
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },

    # -------------------------
    # Entry Points (CLI commands)
    # -------------------------
    entry_points={
        "console_scripts": [
            # voicing-gen Cmaj7 --lesson
            "voicing-gen=chord_voicer.app.cli:main",
        ],
    },

    # -------------------------
    # Metadata
    # -------------------------
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Education",
        "Topic :: Multimedia :: Sound/Audio",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    keywords="guitar, bass, piano, chord voicings, music theory, fretboard",
)
