"""Test suite for mfcrawler.

Hermetic tests: Playwright pages are replaced by doubles built in
``tests/helpers.py`` and every file written goes under ``tmp_path``.

Coverage focuses on text normalization, the refresh poller, group scope
restoration and the cross-group consistency checks.
"""
