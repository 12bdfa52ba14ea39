"""
SpecGen CLI.

Commands:
- migrate: apply pending schema migrations
- status: print migration and database status as JSON
- seed <path>: import categories/parameters from a JSON dataset
- generate: run one generation request and store the result
- serve: start the API server
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from specgen.errors import SpecGenError
from specgen.infra.config import AppConfig, load_config
from specgen.infra.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SpecGen - speculative fiction generator")
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (overrides DATABASE_PATH)"
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Load environment variables from this .env file"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("migrate", help="Apply pending schema migrations")
    subparsers.add_parser("status", help="Show migration and database status")

    seed_parser = subparsers.add_parser("seed", help="Import a seed dataset")
    seed_parser.add_argument("path", type=str, help="JSON file with categories and parameters")

    gen_parser = subparsers.add_parser("generate", help="Generate and store content")
    gen_parser.add_argument(
        "--type",
        choices=["fiction", "image", "combined"],
        default="fiction",
        help="What to generate (default: fiction)"
    )
    gen_parser.add_argument(
        "--params",
        type=str,
        default="{}",
        help='Parameters as JSON: {"category": {"parameter": "value"}}'
    )
    gen_parser.add_argument(
        "--year",
        type=int,
        default=None,
        help="Year the story is set in"
    )
    gen_parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Fiction model. Format: 'ollama:llama3' or Claude model name"
    )

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind host")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    return parser


def _open_store(config: AppConfig):
    from specgen.store.database import SpecGenStore
    return SpecGenStore(config.store)


def run_migrate(config: AppConfig) -> int:
    from specgen.store.migrations import DirectoryMigrationSource, MigrationEngine

    config.store.db_path.parent.mkdir(parents=True, exist_ok=True)
    source = (
        DirectoryMigrationSource(config.store.migrations_dir)
        if config.store.migrations_dir else None
    )
    engine = MigrationEngine(config.store.db_path, source=source)
    applied = engine.migrate()

    if applied:
        print(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
    else:
        print("Schema is up to date")
    return 0


def run_status(config: AppConfig) -> int:
    store = _open_store(config)
    print(json.dumps(store.database_status(), ensure_ascii=False, indent=2))
    return 0


def run_seed(config: AppConfig, path: str) -> int:
    store = _open_store(config)
    imported = store.import_seed_file(path)
    print(f"Imported {imported['categories']} categories, {imported['parameters']} parameters")
    return 0


def run_generate(config: AppConfig, args: argparse.Namespace) -> int:
    from specgen.generation.orchestrator import (
        GenerationOrchestrator,
        GenerationRequest,
        GenerationType,
    )

    try:
        parameters = json.loads(args.params)
    except json.JSONDecodeError as e:
        print(f"Invalid --params JSON: {e}", file=sys.stderr)
        return 2

    if args.model:
        config.generation.fiction_model = args.model

    store = _open_store(config)
    orchestrator = GenerationOrchestrator(config.generation, store=store)
    request = GenerationRequest(
        type=GenerationType(args.type),
        parameters=parameters,
        year=args.year,
    )

    logger.info("=" * 80)
    logger.info(f"[CLI] Generation started: type={args.type}, year={args.year or '-'}")
    logger.info("=" * 80)

    content = orchestrator.generate(request)

    print("\n" + "=" * 80)
    print("RESULT SUMMARY")
    print("=" * 80)
    print(f"Content ID: {content.id}")
    print(f"Title: {content.title}")
    print(f"Word Count: {content.word_count}")
    print(f"Generation Time: {content.generation_time}ms")
    if content.has_image:
        print(f"Image: {content.image_size_bytes} bytes (thumbnail {content.thumbnail_size_bytes} bytes)")
    print("\n--- Metadata JSON ---")
    print(json.dumps(content.metadata, ensure_ascii=False, indent=2))
    if content.fiction_content:
        print("\n--- Story ---")
        print(content.fiction_content)
    print("=" * 80)
    return 0


def run_serve(config: AppConfig, args: argparse.Namespace) -> int:
    import uvicorn

    # The app loads its own config in the lifespan
    os.environ["DATABASE_PATH"] = str(config.store.db_path)
    uvicorn.run(
        "specgen.api.main:app",
        host=args.host or config.api_host,
        port=args.port or config.api_port,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.env_file)
    if args.db:
        config.store.db_path = Path(args.db)

    setup_logging(config.log_level, config.log_dir, component="cli")

    try:
        if args.command == "migrate":
            return run_migrate(config)
        if args.command == "status":
            return run_status(config)
        if args.command == "seed":
            return run_seed(config, args.path)
        if args.command == "generate":
            return run_generate(config, args)
        if args.command == "serve":
            return run_serve(config, args)
    except SpecGenError as e:
        logger.error(f"[CLI] {type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
