"""
App Subpackage

    - cli.py: The `voicing-gen` command-line tool

Usage:
    voicing-gen Cmaj7 --lesson
    python -m chord_voicer.app.cli F --voicing-type barre
"""
