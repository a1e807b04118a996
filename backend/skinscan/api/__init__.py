"""
SkinScan API
============

HTTP routes for ingredient enrichment.
"""
