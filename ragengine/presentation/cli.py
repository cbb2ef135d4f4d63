import asyncio
import logging
import sys
import time
from pathlib import Path

import httpx

from ragengine.config.settings import Settings, settings
from ragengine.container import configure_container
from ragengine.core.errors import RagError
from ragengine.core.services.rag_engine import RagEngine

logging.basicConfig(level=settings.log_level, format="%(message)s")
logger = logging.getLogger(__name__)


def ensure_ollama_model(config: Settings = settings) -> bool:
    """Ensure Ollama model is available.

    Returns:
        True if model ready, False otherwise.
    """
    model = config.llm_model
    base_url = config.llm_base_url.replace("/v1", "")

    logger.info(f"Checking Ollama model: {model}")

    for attempt in range(30):
        try:
            resp = httpx.get(f"{base_url}/api/tags", timeout=5)
            if resp.status_code == 200:
                models = [m["name"] for m in resp.json().get("models", [])]
                if any(model in m for m in models):
                    logger.info(f"Model {model} is ready")
                    return True

                logger.info(f"Pulling model {model}...")
                pull_resp = httpx.post(
                    f"{base_url}/api/pull",
                    json={"name": model},
                    timeout=600,
                )
                if pull_resp.status_code == 200:
                    logger.info(f"Model {model} pulled successfully")
                    return True
                logger.error(f"Failed to pull model: {pull_resp.text}")
            else:
                logger.info(f"Ollama returned {resp.status_code} ({attempt + 1}/30)")
        except httpx.HTTPError:
            logger.info(f"Waiting for Ollama... ({attempt + 1}/30)")
        time.sleep(2)

    logger.error("Ollama not available")
    return False


def _uses_ollama(config: Settings) -> bool:
    return config.llm_provider == "openai" and ":11434" in config.llm_base_url


async def ingest_folder(engine: RagEngine, docs_path: Path) -> int:
    """Index every supported file under docs_path.

    Returns:
        Number of chunks indexed.
    """
    if not docs_path.exists():
        logger.warning(f"Docs path not found: {docs_path}")
        return 0

    total = 0
    for path in sorted(p for p in docs_path.rglob("*") if p.is_file()):
        try:
            document = await engine.add_document(path.name, path.read_bytes())
        except RagError as e:
            logger.warning(f"Skipped {path.name}: {e}")
            continue
        total += document.chunk_count
    return total


async def cmd_ingest(engine: RagEngine) -> None:
    """Ingest command - index documents only."""
    count = await ingest_folder(engine, Path(settings.docs_path))
    logger.info(f"Indexed {count} chunks")


async def cmd_ask(engine: RagEngine, question: str) -> None:
    """Ask command - index documents, then answer one question."""
    await ingest_folder(engine, Path(settings.docs_path))
    answer = await engine.query(question)

    print(answer.answer)
    if answer.sources:
        names = dict.fromkeys(r.document.name for r in answer.sources)
        print("\nSources: " + ", ".join(names))
    print(
        f"\nConfidence: {answer.confidence:.2f} | chunks: {answer.metadata.total_chunks} | "
        f"tokens: {answer.metadata.tokens_used} | {answer.metadata.processing_time:.2f}s"
    )


async def cmd_stats(engine: RagEngine) -> None:
    """Stats command - index documents and report counts."""
    await ingest_folder(engine, Path(settings.docs_path))
    stats = engine.stats()
    print(f"Documents: {stats.document_count}")
    print(f"Chunks: {stats.chunk_count}")
    print(f"Cached answers: {stats.cache_entries}")


def main():
    """CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m ragengine.presentation.cli <command>")
        print("Commands: ingest, ask <question>, stats")
        sys.exit(1)

    command = sys.argv[1]
    if command not in ("ingest", "ask", "stats"):
        print(f"Unknown command: {command}")
        sys.exit(1)
    if command == "ask" and len(sys.argv) < 3:
        print("Usage: python -m ragengine.presentation.cli ask <question>")
        sys.exit(1)

    if command == "ask" and _uses_ollama(settings) and not ensure_ollama_model():
        sys.exit(1)

    engine = configure_container(settings).resolve(RagEngine)

    try:
        if command == "ingest":
            asyncio.run(cmd_ingest(engine))
        elif command == "ask":
            asyncio.run(cmd_ask(engine, " ".join(sys.argv[2:])))
        else:
            asyncio.run(cmd_stats(engine))
    except RagError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
