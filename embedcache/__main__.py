"""CLI entrypoint: python -m embedcache {embed|similarity|search|inspect}."""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import sys
from pathlib import Path

from embedcache.codec import read_collection
from embedcache.config import get_logging_config, load_config
from embedcache.encoders import get_encoder
from embedcache.errors import EmbedCacheError
from embedcache.service import EmbeddingService
from embedcache.vector_math import cosine_similarity


def setup_logging(config: dict) -> None:
    """Configure logging with console + optional rotating file output."""
    log_cfg = get_logging_config(config)
    root = logging.getLogger()
    root.setLevel(log_cfg["level"])

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    if log_cfg["file"]:
        log_file = Path(log_cfg["file"])
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # Rotate at 5MB, keep 3 backups
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_file), maxBytes=5 * 1024 * 1024, backupCount=3,
        )
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger("embedcache")


def _build_service(config: dict) -> EmbeddingService:
    return EmbeddingService(config, encoder=get_encoder(config))


def cmd_embed(config: dict, args: argparse.Namespace) -> None:
    """Embed a text or every line of a file, optionally saving the result."""
    if args.text is None and args.file is None:
        print("Please provide either --text or --file")
        sys.exit(1)

    service = _build_service(config)
    if args.text is not None:
        texts = [args.text]
    else:
        texts = Path(args.file).read_text().splitlines()

    vectors = service.embed_batch(texts)
    print(f"Embedded {len(vectors)} text(s) with {service.model_name} (dim={service.dimension})")
    if len(vectors) == 1:
        preview = ", ".join(f"{v:.4f}" for v in vectors[0][:5])
        print(f"First values: [{preview}, ...]")

    if args.output:
        service.save(args.output, vectors, texts)
        print(f"Embeddings saved to {args.output}")


def cmd_similarity(config: dict, args: argparse.Namespace) -> None:
    """Compare a text against the first embedding stored in a file."""
    service = _build_service(config)
    vectors, texts = service.load(args.embedding_file)
    if not vectors:
        print("No embeddings found in the file")
        return

    query_vec = service.embed_text(args.text)
    score = cosine_similarity(vectors[0], query_vec)
    print(f"Similarity: {score:.6f}")
    if texts:
        print(f"Original text: {texts[0]}")
    print(f"Input text: {args.text}")


def cmd_search(config: dict, args: argparse.Namespace) -> None:
    """Rank the records of an embedding file against a query."""
    service = _build_service(config)
    collection = service.load_collection(args.embedding_file)
    results = service.search_collection(args.query, collection, top_k=args.top_k)
    if not results:
        print("No embeddings found in the file")
        return
    for i, result in enumerate(results, 1):
        print(f"{i:>3}. {result.score:.4f}  {result.id}")


def cmd_inspect(config: dict, args: argparse.Namespace) -> None:
    """Print the header and a preview of an embedding file."""
    collection = read_collection(args.embedding_file)
    print(f"Model:      {collection.model_name or 'N/A'}")
    print(f"Version:    {collection.model_version or 'N/A'}")
    print(f"Dimension:  {collection.dimension}")
    print(f"Embeddings: {len(collection)}")
    for i, record in enumerate(collection.records[:args.limit]):
        text = (record.text or "")[:60].replace("\n", " ")
        print(f"  {i:>3}  t={record.timestamp}  {text}")


COMMANDS = {
    "embed": cmd_embed,
    "similarity": cmd_similarity,
    "search": cmd_search,
    "inspect": cmd_inspect,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="embedcache", description="Embed, compare and store texts")
    sub = parser.add_subparsers(dest="command", required=True)

    embed = sub.add_parser("embed", help="Embed text and optionally save it")
    embed.add_argument("-t", "--text", help="Text to embed")
    embed.add_argument("-f", "--file", help="File with one text per line")
    embed.add_argument("-o", "--output", help="Output file for the embeddings")

    similarity = sub.add_parser("similarity", help="Compare text with a stored embedding")
    similarity.add_argument("-e", "--embedding-file", required=True)
    similarity.add_argument("-t", "--text", required=True)

    search = sub.add_parser("search", help="Rank stored embeddings against a query")
    search.add_argument("-e", "--embedding-file", required=True)
    search.add_argument("-q", "--query", required=True)
    search.add_argument("-k", "--top-k", type=int, default=5)

    inspect = sub.add_parser("inspect", help="Show an embedding file's contents")
    inspect.add_argument("embedding_file")
    inspect.add_argument("-n", "--limit", type=int, default=10)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    config_path = os.environ.get("CONFIG_PATH", "config.yaml")
    config = load_config(config_path, missing_ok=True)
    setup_logging(config)

    try:
        COMMANDS[args.command](config, args)
    except EmbedCacheError as exc:
        logger.error("%s failed: %s", args.command, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
