from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from core.catalog import ValidationMode, load_static_catalog
from core.exceptions import CatalogLoadError, MalformedCatalogRowError
from core.identity import is_product_page
from core.settings_manager import settings
from extraction.product_meta import ProductMetaResolver, collect_page_facts
from matching.domains import page_domains
from matching.matcher import is_item_in_catalog, match_catalog
from runner.factory import build_catalog_repository, build_fetcher
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find catalog alternatives for a shopping page")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--pretty-logs", action="store_true", help="Human-readable logs instead of JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Extract page facts and rank catalog alternatives")
    analyze.add_argument("url", help="Item page URL")
    analyze.add_argument("--markup-file", help="Read page markup from a saved file instead of fetching")
    analyze.add_argument("--limit", type=int, default=None, help="Maximum alternatives (or set MATCH_LIMIT)")
    analyze.add_argument("--all-scored", action="store_true", help="Include the full scored list")
    analyze.add_argument("--table", action="store_true", help="Render alternatives as a table instead of JSON")

    meta = subparsers.add_parser("meta", help="Resolve live rating, reviews, price and image for an item")
    meta.add_argument("url", help="Item page URL")

    validate = subparsers.add_parser("validate-catalog", help="Validate a static catalog document")
    validate.add_argument("path", nargs="?", default=None, help="Catalog JSON path (or set CATALOG_STATIC_PATH)")
    validate.add_argument("--mode", choices=[m.value for m in ValidationMode], default=None)

    return parser.parse_args(argv)


console = Console()


def _print(data: dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, default=str))


def _print_table(facts_title: str, rows: list[dict[str, Any]]) -> None:
    console.print(f"\n[bold]{facts_title or 'Untitled page'}[/bold]\n")
    if not rows:
        console.print("[yellow]No alternatives found[/yellow]")
        return

    table = Table(show_header=True)
    table.add_column("Score", justify="right")
    table.add_column("Name")
    table.add_column("Brand", style="dim")
    table.add_column("Keywords")
    for row in rows:
        table.add_row(str(row["score"]), row["name"], row["brand"], ", ".join(row["matched_keywords"]))
    console.print(table)


async def run_analyze(args: argparse.Namespace) -> int:
    url = args.url
    if not is_product_page(url):
        logger.error(f"[CLI] Not a product page URL: {url}")
        return 2

    fetcher = build_fetcher(settings)
    if args.markup_file:
        markup = Path(args.markup_file).read_text(encoding="utf-8")
    else:
        markup = await fetcher.fetch(url)
        if markup is None:
            logger.error(f"[CLI] Could not fetch {url}")
            return 1

    repository = build_catalog_repository(settings)
    try:
        catalog = await repository.load()
    except (CatalogLoadError, MalformedCatalogRowError) as e:
        logger.error(f"[CLI] Catalog unavailable: {e}")
        return 1

    facts = await collect_page_facts(markup, url, fetcher)
    output: dict[str, Any] = {
        "facts": facts.model_dump(),
        "domains": sorted(page_domains(facts)),
        "catalog_source": repository.source,
    }

    if is_item_in_catalog(facts.item_id, catalog):
        output["in_catalog"] = True
        output["alternatives"] = []
        if args.table:
            console.print(f"\n[bold]{facts.title or 'Untitled page'}[/bold]\n")
            console.print("[green]Item is already in the catalog[/green]")
        else:
            _print(output)
        return 0

    limit = args.limit if args.limit is not None else settings.get("match_limit")
    result = match_catalog(facts, catalog, limit=limit)
    output["alternatives"] = [candidate.to_dict() for candidate in result.top]
    if args.all_scored:
        output["scored"] = [candidate.to_dict() for candidate in result.scored]
    if args.table:
        _print_table(facts.title, output["alternatives"])
    else:
        _print(output)
    return 0


async def run_meta(args: argparse.Namespace) -> int:
    resolver = ProductMetaResolver(build_fetcher(settings))
    meta, image_url = await asyncio.gather(resolver.resolve_meta(args.url), resolver.resolve_image(args.url))
    _print({"url": args.url, **meta.to_dict(), "image_url": image_url})
    return 0


def run_validate_catalog(args: argparse.Namespace) -> int:
    path = args.path or settings.get("catalog_static_path")
    mode = ValidationMode.parse(args.mode or settings.get("catalog_validation_mode"))
    try:
        entries = load_static_catalog(path, mode=mode)
    except MalformedCatalogRowError as e:
        logger.error(f"[CLI] Catalog invalid: {e}")
        _print({"path": str(path), "valid": False, "error": str(e), "errors": e.validation_errors})
        return 1
    except CatalogLoadError as e:
        logger.error(f"[CLI] {e}")
        return 1

    _print({"path": str(path), "mode": mode.value, "valid": True, "products": len(entries)})
    return 0


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    settings.reload()

    args = parse_args(argv)
    setup_logging(debug_mode=args.debug, json_output=not args.pretty_logs)

    if args.command == "analyze":
        code = asyncio.run(run_analyze(args))
    elif args.command == "meta":
        code = asyncio.run(run_meta(args))
    else:
        code = run_validate_catalog(args)
    sys.exit(code)


if __name__ == "__main__":
    main()
