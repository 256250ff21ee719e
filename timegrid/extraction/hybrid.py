"""Hybrid OCR + LLM timetable extraction pipeline.

Routes a document to text, renders the prompt, asks each configured LLM
provider in priority order until one returns a parseable reply, then
normalizes, completes, enriches and indexes the blocks. Extraction never
fails outright: any stage error yields the placeholder fallback schedule.
"""

from dataclasses import dataclass, field
from pathlib import Path

from timegrid.enrichment.index import BlockIndex, enrich_blocks
from timegrid.ocr.router import FileTypeRouter
from timegrid.utils.config import AppConfig
from timegrid.utils.logger import get_logger

from .normalizer import TimeBlockData, parse_llm_response
from .prompts import SYSTEM_PROMPT, build_user_prompt, document_prompt_text
from .providers import LLMProvider, build_providers
from .standard_blocks import fallback_schedule, standard_blocks_for

logger = get_logger(__name__)


@dataclass
class ExtractionResult:
    """Outcome of one extraction run."""

    timeblocks: list[TimeBlockData]
    provider: str | None = None
    used_fallback: bool = False
    source_kind: str | None = None
    raw_text: str = ""
    page_count: int | None = None
    error: str | None = None
    attempts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "timeblocks": [block.to_dict() for block in self.timeblocks],
            "provider": self.provider,
            "usedFallback": self.used_fallback,
            "sourceKind": self.source_kind,
            "pageCount": self.page_count,
            "error": self.error,
        }


class HybridProcessor:
    """Sequential OCR → LLM extraction with multi-provider fallback.

    Args:
        config: Application configuration.
        router: File-type router; built from ``config`` when omitted.
        providers: LLM providers in priority order; built from
            ``config.llm`` when omitted.
        index: Block index to register extracted blocks in.
    """

    def __init__(
        self,
        config: AppConfig,
        router: FileTypeRouter | None = None,
        providers: list[LLMProvider] | None = None,
        index: BlockIndex | None = None,
    ) -> None:
        self.config = config
        self.router = router or FileTypeRouter(config)
        self.providers = providers if providers is not None else build_providers(config.llm)
        self.index = index

    @property
    def available_providers(self) -> list[str]:
        return [p.name for p in self.providers if p.available]

    def process_file(
        self,
        path: Path,
        mime_type: str | None = None,
        document_id: str | None = None,
    ) -> ExtractionResult:
        """Extract time blocks from a document on disk.

        Args:
            path: Path to the uploaded document.
            mime_type: MIME type recorded at upload, if known.
            document_id: Key under which the blocks are indexed.

        Returns:
            Extraction result; ``used_fallback`` is set when the
            placeholder schedule was returned.
        """
        logger.info("Starting hybrid OCR + LLM processing of %s", Path(path).name)
        try:
            document = self.router.load(Path(path), mime_type)
        except Exception as exc:
            logger.error("Could not read %s: %s", Path(path).name, exc)
            return self._fallback(f"Document could not be read: {exc}", document_id)

        if not document.text.strip():
            logger.warning("No text recovered from %s", document.source_file)
            result = self._fallback(
                "No text could be recovered from the document",
                document_id,
                source_kind=document.kind,
            )
            result.page_count = document.page_count
            return result

        if document.confidence is not None:
            logger.info(
                "OCR extracted %d characters with %.0f%% confidence",
                len(document.text),
                document.confidence * 100,
            )

        result = self.extract_from_text(document_prompt_text(document), document_id)
        result.source_kind = document.kind
        result.raw_text = document.text
        result.page_count = document.page_count
        return result

    def extract_from_text(
        self, document_text: str, document_id: str | None = None
    ) -> ExtractionResult:
        """Run the LLM stage on already extracted document text.

        Args:
            document_text: Text rendered for the prompt.
            document_id: Key under which the blocks are indexed.

        Returns:
            Extraction result from the first provider that succeeds, or
            the fallback schedule when every provider fails.
        """
        user_prompt = build_user_prompt(document_text)
        attempts: list[str] = []

        for provider in self.providers:
            if not provider.available:
                logger.info("Skipping %s: no API key configured", provider.name)
                continue

            attempts.append(provider.name)
            logger.info("Trying %s for extraction", provider.name)
            try:
                reply = provider.complete(SYSTEM_PROMPT, user_prompt)
                blocks = parse_llm_response(
                    reply, default_duration=self.config.extraction.default_duration
                )
            except Exception as exc:
                logger.warning("%s extraction failed: %s", provider.name, exc)
                continue

            if not blocks:
                logger.warning("%s returned no timeblocks", provider.name)
                continue

            logger.info("Extracted %d timeblocks using %s", len(blocks), provider.name)
            return self._finish(
                blocks, document_id, provider=provider.name, attempts=attempts
            )

        logger.error("All LLM providers failed, using fallback data")
        result = self._fallback("All LLM providers failed", document_id)
        result.attempts = attempts
        return result

    def _finish(
        self,
        blocks: list[TimeBlockData],
        document_id: str | None,
        provider: str | None,
        attempts: list[str],
    ) -> ExtractionResult:
        if self.config.extraction.add_standard_blocks:
            extra = standard_blocks_for(blocks)
            if extra:
                logger.info("Added %d standard school-day blocks", len(extra))
            blocks = blocks + extra

        enrich_blocks(blocks)
        self._index(document_id, blocks)
        return ExtractionResult(timeblocks=blocks, provider=provider, attempts=attempts)

    def _fallback(
        self,
        reason: str,
        document_id: str | None,
        source_kind: str | None = None,
    ) -> ExtractionResult:
        logger.warning("Using fallback data: %s", reason)
        blocks = enrich_blocks(fallback_schedule())
        self._index(document_id, blocks)
        return ExtractionResult(
            timeblocks=blocks,
            used_fallback=True,
            source_kind=source_kind,
            error=reason,
        )

    def _index(self, document_id: str | None, blocks: list[TimeBlockData]) -> None:
        if self.index is not None and document_id:
            self.index.add(document_id, blocks)
