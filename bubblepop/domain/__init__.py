"""Pure domain types: targets, items, rounds, catalogs and variant descriptors.

Nothing in this package imports Qt.
"""
