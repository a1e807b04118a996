"""
SkinScan Ingredient AI
======================

Enriches scanned cosmetic ingredient lists with structured safety and
benefit metadata.
"""

__version__ = "1.0.0"
