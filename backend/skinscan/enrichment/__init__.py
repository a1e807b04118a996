"""
Enrichment Module
=================

Cache-first, retrieval-augmented enrichment of ingredient names with
safety/benefit metadata.
"""

from .enricher import IngredientEnricher, enrich_ingredients, get_enricher, set_enricher

__all__ = ["IngredientEnricher", "enrich_ingredients", "get_enricher", "set_enricher"]
