#!/usr/bin/env python3
"""
Ingredient Enrichment Script
============================

Enriches a list of ingredient names offline (e.g. to warm the ingredient
cache from a product catalogue export), or runs risk-only assessment.

Usage:
    cd backend
    python scripts/enrich_ingredients.py --input ingredients.txt

    # With options:
    python scripts/enrich_ingredients.py --input names.json --output enriched.json
    python scripts/enrich_ingredients.py --input names.txt --risk-only   # risk_level + reason only
    python scripts/enrich_ingredients.py --input names.txt --limit 20    # First 20 names
    python scripts/enrich_ingredients.py --input names.txt --dry-run     # Preview without calling the LLM

Input:
    Text file (one name per line) or JSON list of names.

Environment:
    GENERATION_API_KEY: Required for LLM enrichment
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from skinscan.core.config import get_settings
from skinscan.enrichment.enricher import IngredientEnricher, normalize_ingredient_name
from skinscan.llm.batch_generator import BatchGenerator
from skinscan.llm.risk_assessor import RiskAssessor
from skinscan.schemas.ingredient import Fallback

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_names(path: Path) -> list:
    """Load ingredient names from a text or JSON file."""
    if not path.exists():
        logger.error("File not found: %s", path)
        return []

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse %s: %s", path, e)
            return []
        if isinstance(raw, dict):
            raw = raw.get("ingredients", [])
        candidates = [n for n in raw if isinstance(n, str)]
    else:
        candidates = text.splitlines()

    names = [normalize_ingredient_name(n) for n in candidates]
    return list(dict.fromkeys(n for n in names if n))


def generation_ready(settings) -> bool:
    """True when the configured provider has everything it needs to be called."""
    return BatchGenerator(settings=settings).is_configured


def save_results(results: list, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results, f, ensure_ascii=False, indent=2)
    logger.info("Saved %d results to %s", len(results), path)


async def run_enrichment(names: list, chunk_size: int) -> tuple[list, int]:
    enricher = IngredientEnricher()
    results = []
    fallback_count = 0

    for start in tqdm(range(0, len(names), chunk_size), desc="Enriching", unit="chunk"):
        chunk = names[start : start + chunk_size]
        resolutions = await enricher.enrich_detailed(chunk)
        for resolution in resolutions:
            if resolution is None:
                continue
            if isinstance(resolution, Fallback):
                fallback_count += 1
            results.append(resolution.record.model_dump())

    return results, fallback_count


async def run_risk_assessment(names: list, chunk_size: int) -> list:
    assessor = RiskAssessor()
    results = []

    for start in tqdm(range(0, len(names), chunk_size), desc="Assessing", unit="chunk"):
        chunk = names[start : start + chunk_size]
        try:
            assessments = await assessor.assess(chunk)
        except Exception as e:
            logger.error("Risk assessment failed for chunk starting at %d: %s", start, e)
            continue
        results.extend(a.model_dump() for a in assessments)

    return results


async def main():
    parser = argparse.ArgumentParser(description="Enrich ingredient names with safety metadata")
    parser.add_argument("--input", required=True, help="Text (one per line) or JSON list of names")
    parser.add_argument("--output", help="Output file path (default: <input>.enriched.json)")
    parser.add_argument("--limit", type=int, help="Limit number of names to process")
    parser.add_argument("--chunk-size", type=int, default=25, help="Names per enrichment call")
    parser.add_argument("--risk-only", action="store_true", help="Only assess risk_level and reason")
    parser.add_argument("--dry-run", action="store_true", help="Preview without calling the LLM")
    args = parser.parse_args()

    input_path = Path(args.input)
    suffix = ".risk.json" if args.risk_only else ".enriched.json"
    output_path = Path(args.output) if args.output else input_path.with_suffix(suffix)

    settings = get_settings()
    if not args.dry_run and not generation_ready(settings):
        logger.error(
            "Generation service not configured (provider=%s). "
            "Set GENERATION_API_KEY (and GENERATION_API_URL for clova) in .env or environment.",
            settings.generation_provider,
        )
        sys.exit(1)

    names = load_names(input_path)
    if not names:
        logger.error("No ingredient names found")
        sys.exit(1)

    if args.limit:
        names = names[: args.limit]

    logger.info("Ingredients to process: %d", len(names))

    if args.dry_run:
        logger.info("DRY RUN - Would process these ingredients:")
        for n in names[:10]:
            logger.info("  - %s", n)
        if len(names) > 10:
            logger.info("  ... and %d more", len(names) - 10)
        return

    if args.risk_only:
        results = await run_risk_assessment(names, args.chunk_size)
        logger.info("Assessed: %d/%d", len(results), len(names))
    else:
        results, fallback_count = await run_enrichment(names, args.chunk_size)
        logger.info("Enrichment complete:")
        logger.info("  Enriched: %d", len(results) - fallback_count)
        logger.info("  Fallbacks: %d", fallback_count)

    save_results(results, output_path)


if __name__ == "__main__":
    asyncio.run(main())
