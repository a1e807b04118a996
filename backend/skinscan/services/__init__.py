"""
SkinScan Services
=================

Thin clients for external model providers.
"""
