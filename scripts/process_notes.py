"""CLI for refreshing references, backlinks and suggestions of every note of an owner"""

import argparse
import asyncio
import sys

from loguru import logger

from notegraph.config import settings
from notegraph.embedders.factory import build_embedder
from notegraph.note_store.local import LocalNoteStore
from notegraph.similarity import select_strategy
from notegraph.suggestions.manager import SuggestionManager


def main(note_store_path: str, owner_id: str, threshold: float, lexical: bool) -> None:
    logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

    note_store = LocalNoteStore(filepath=note_store_path)
    embedder = None
    if not lexical:
        embedder = build_embedder(
            settings.embedding_provider, settings.voyage_ai_api_key, settings.openai_api_key
        )

    manager = SuggestionManager(
        note_store=note_store,
        strategy=select_strategy(embedder),
        threshold=threshold,
    )
    processed = asyncio.run(manager.process_all_notes(owner_id))
    note_store.save()
    logger.info(f"Processed {processed} notes for owner {owner_id}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--note-store",
        type=str,
        required=False,
        help="Local note store file",
        default=settings.local_note_store_path,
    )
    parser.add_argument(
        "--owner-id",
        type=str,
        required=False,
        help="Owner whose notes are processed",
        default=settings.default_owner_id,
    )
    parser.add_argument(
        "--threshold",
        type=float,
        required=False,
        help="Minimum relevance for a suggestion",
        default=settings.similarity_threshold,
    )
    parser.add_argument(
        "--lexical", action="store_true", help="Use lexical similarity even with embeddings set up"
    )

    args = parser.parse_args()

    main(
        note_store_path=args.note_store,
        owner_id=args.owner_id,
        threshold=args.threshold,
        lexical=args.lexical,
    )
