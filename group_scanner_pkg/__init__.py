"""Facebook group scanner package.

Small modules covering URL canonicalization, attribute extraction, the
record store, scan passes and exports, plus the Playwright plumbing that
feeds them page snapshots.
"""
