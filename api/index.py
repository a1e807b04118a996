"""
SkinScan - Vercel Serverless Entry Point
========================================

This file is the entry point for Vercel's Python serverless functions.
It imports and exposes the FastAPI application from the backend.

Environment Variables (set in Vercel dashboard):
  - GENERATION_API_KEY: Required for ingredient generation
  - GENERATION_API_URL: Required when GENERATION_PROVIDER=clova
  - UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN: ingredient cache (CACHE_BACKEND=upstash)
"""

import sys
from pathlib import Path

# Add the backend directory to Python path
# This allows imports like "from skinscan.enrichment import IngredientEnricher"
backend_dir = Path(__file__).resolve().parent.parent / "backend"
sys.path.insert(0, str(backend_dir))

# Import the FastAPI app from main.py
from main import app

# Vercel expects the app to be available at module level
# The "app" variable is automatically picked up by @vercel/python
