"""
Test Package

Contains unit tests for all modules.
Run with: pytest tests/ -v

Test files follow the pattern:
    test_<module_name>.py

Example:
    tests/test_chords.py       - Tests for chord_voicer/rules/chords.py
    tests/test_fretboard.py    - Tests for chord_voicer/rules/fretboard.py
    tests/test_generate.py     - End-to-end tests of the voicing pipeline
"""
