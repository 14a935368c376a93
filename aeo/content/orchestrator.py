"""
Content Generation Orchestrator

Research -> draft -> SEO/AEO syntax -> scoring + E-E-A-T QA -> revision
loop, reporting progress through a callback after every phase.

Quality gate:
    overall = dataforseo*0.20 + eeat*0.35 + depth*0.15 + factual*0.15 + aeo*0.15
    Revise while overall < MIN_OVERALL_SCORE and fewer than
    MAX_REVISION_ROUNDS revisions have been made.

Cancellation is cooperative: check_aborted() runs before every phase, so
setting the abort event stops the run at the next phase boundary.
"""

import asyncio
import functools
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from aeo.database.repository import slugify
from aeo.errors import ProviderError, check_aborted, with_agent_retry
from aeo.integrations.llm import LLMClient
from aeo.integrations.perplexity import PerplexityClient

logger = logging.getLogger(__name__)

MIN_OVERALL_SCORE = 70
MAX_REVISION_ROUNDS = 2
DEFAULT_WORD_COUNT = 2000

SCORE_WEIGHTS = {
    "dataforseo": 0.20,
    "eeat": 0.35,
    "depth": 0.15,
    "factual": 0.15,
    "aeo": 0.15,
}

AEO_BASE_SCORE = 40
AEO_FALLBACK_SCORE = 50
DIRECT_ANSWER_MAX_WORDS = 60

CONTENT_TYPES = ("blog_post", "article", "social_media", "landing_page")

QUESTION_WORDS = ("what", "how", "why", "when", "where", "who", "which", "can", "does", "is", "are", "should")


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass
class ContentRequest:
    topic: str
    type: str
    keywords: List[str]
    tone: Optional[str] = None
    word_count: Optional[int] = None
    competitor_urls: Optional[List[str]] = None
    user_id: Optional[str] = None

    @property
    def target_keyword(self) -> str:
        return self.keywords[0] if self.keywords else self.topic


@dataclass
class ProgressUpdate:
    phase: str
    status: str  # pending | in_progress | completed | error
    message: str
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"phase": self.phase, "status": self.status, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


@dataclass
class QualityScores:
    dataforseo: float = 0.0
    eeat: float = 0.0
    depth: float = 0.0
    factual: float = 0.0
    aeo: float = AEO_FALLBACK_SCORE
    overall: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class SyntaxReport:
    h1_present: bool
    heading_hierarchy_valid: bool
    h2_question_heading: bool
    direct_answer: Optional[str]
    meta_title: str
    meta_description: str
    slug: str


@dataclass
class ContentResult:
    content: str
    content_id: Optional[str]
    quality_scores: QualityScores
    revision_count: int
    qa_report: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "contentId": self.content_id,
            "qualityScores": self.quality_scores.to_dict(),
            "revisionCount": self.revision_count,
            "metadata": self.metadata,
        }


ProgressCallback = Callable[[ProgressUpdate], Union[None, Awaitable[None]]]
ProgressErrorCallback = Callable[[BaseException, ProgressUpdate], Union[None, Awaitable[None]]]
# persist(content, content_id, fields) -> content_id
PersistCallback = Callable[[str, Optional[str], Dict[str, Any]], Union[Optional[str], Awaitable[Optional[str]]]]


async def _maybe_await(value):
    if asyncio.iscoroutine(value):
        return await value
    return value


# =============================================================================
# SCORING
# =============================================================================

def _headings(content: str) -> List[tuple]:
    return [
        (len(m.group(1)), m.group(2).strip())
        for m in re.finditer(r"^(#{1,6})\s+(.+)$", content, re.MULTILINE)
    ]


def _paragraphs(content: str) -> List[str]:
    blocks = [b.strip() for b in re.split(r"\n\s*\n", content)]
    return [b for b in blocks if b and not b.startswith(("#", "-", "*", "|", ">")) and not re.match(r"^\d+\.", b)]


def analyze_syntax(content: str) -> SyntaxReport:
    """
    Structural SEO/AEO checks on a markdown article.

    Raises:
        ValueError: If the content is empty
    """
    if not content or not content.strip():
        raise ValueError("Cannot analyze empty content")

    headings = _headings(content)
    h1s = [text for level, text in headings if level == 1]

    hierarchy_valid = len(h1s) <= 1
    previous = 0
    for level, _ in headings:
        if previous and level > previous + 1:
            hierarchy_valid = False
            break
        previous = level

    question_h2 = any(
        level == 2 and (text.endswith("?") or text.lower().split(" ", 1)[0] in QUESTION_WORDS)
        for level, text in headings
    )

    paragraphs = _paragraphs(content)
    first = paragraphs[0] if paragraphs else ""
    direct_answer = first if first and len(first.split()) <= DIRECT_ANSWER_MAX_WORDS else None

    title = h1s[0] if h1s else (headings[0][1] if headings else first[:60])
    description = (direct_answer or first)[:155]
    return SyntaxReport(
        h1_present=bool(h1s),
        heading_hierarchy_valid=hierarchy_valid,
        h2_question_heading=question_h2,
        direct_answer=direct_answer,
        meta_title=title[:60],
        meta_description=description,
        slug=slugify(title),
    )


def calculate_aeo_score(report: SyntaxReport) -> int:
    score = AEO_BASE_SCORE
    if report.direct_answer:
        score += 25
    if report.heading_hierarchy_valid:
        score += 15
    if report.h1_present:
        score += 10
    if report.h2_question_heading:
        score += 10
    return min(100, score)


def keyword_coverage_score(content: str, keywords: List[str], target_keyword: str) -> float:
    """
    0-100 on-page keyword score.

    80 points spread over the keywords found anywhere in the text, 20 more
    when the target keyword appears in the first 100 words.
    """
    text = content.lower()
    terms = [k.lower() for k in keywords if k] or [target_keyword.lower()]
    covered = sum(1 for term in terms if term in text)
    score = covered / len(terms) * 80
    if target_keyword.lower() in " ".join(text.split()[:100]):
        score += 20
    return round(min(100.0, score), 1)


def calculate_overall_score(scores: QualityScores) -> float:
    overall = sum(getattr(scores, name) * weight for name, weight in SCORE_WEIGHTS.items())
    return round(overall, 1)


def should_revise(overall: float, revision_round: int) -> bool:
    return overall < MIN_OVERALL_SCORE and revision_round < MAX_REVISION_ROUNDS


# =============================================================================
# PROMPTS
# =============================================================================

WRITER_SYSTEM = (
    "You are an expert SEO and AEO content writer. Write in markdown with a single H1, "
    "question-style H2 headings where natural, and a 40-60 word direct answer right after the H1."
)

QA_SYSTEM = "You are a strict E-E-A-T content reviewer. Output ONLY valid JSON."

QA_PROMPT = """Review this {content_type} targeting "{keyword}".

Draft:
{draft}

Score it and return JSON:
{{
  "eeat_score": number (0-100),
  "depth_score": number (0-100),
  "factual_score": number (0-100),
  "improvement_instructions": [string],
  "strengths": [string],
  "weaknesses": [string]
}}"""


def build_writer_prompt(request: ContentRequest, research: str, citations: List[str]) -> str:
    lines = [
        f"Write a {request.type.replace('_', ' ')} about: {request.topic}",
        f"Target keyword: {request.target_keyword}",
        f"Secondary keywords: {', '.join(request.keywords[1:]) or 'none'}",
        f"Tone: {request.tone or 'professional'}",
        f"Length: about {request.word_count or DEFAULT_WORD_COUNT} words",
    ]
    if research:
        lines += ["", "Research notes:", research]
    if citations:
        lines += ["", "Only cite these sources:", *[f"- {c}" for c in citations]]
    return "\n".join(lines)


def build_revision_prompt(request: ContentRequest, draft: str, qa_report: Dict[str, Any]) -> str:
    instructions = qa_report.get("improvement_instructions") or qa_report.get("weaknesses") or []
    bullet_list = "\n".join(f"- {i}" for i in instructions) or "- Improve depth, accuracy and expertise signals"
    return (
        f"Revise this article about {request.topic} (target keyword: {request.target_keyword}).\n\n"
        f"Apply these improvements:\n{bullet_list}\n\n"
        f"Keep the markdown structure. Return only the revised article.\n\n{draft}"
    )


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class ContentOrchestrator:
    """Runs the content pipeline for one request at a time."""

    def __init__(self, llm_client: Optional[LLMClient], perplexity_client: Optional[PerplexityClient] = None):
        if llm_client is None:
            raise ProviderError("No LLM provider is configured", provider="anthropic", status_code=503, retryable=False)
        self.llm = llm_client
        self.perplexity = perplexity_client

    async def _emit(
        self,
        on_progress: Optional[ProgressCallback],
        on_progress_error: Optional[ProgressErrorCallback],
        phase: str,
        status: str,
        message: str,
        details: Optional[str] = None,
    ):
        if on_progress is None:
            return
        update = ProgressUpdate(phase, status, message, details)
        try:
            await _maybe_await(on_progress(update))
        except Exception as e:
            logger.warning(f"Progress callback failed for phase {phase}: {e}")
            if on_progress_error is not None:
                try:
                    await _maybe_await(on_progress_error(e, update))
                except Exception as handler_error:
                    logger.error(f"Progress error handler failed: {handler_error}")

    async def _write(self, prompt: str, request: ContentRequest, agent: str) -> str:
        max_tokens = min(16000, max(2000, int((request.word_count or DEFAULT_WORD_COUNT) * 2)))

        async def call():
            result = await self.llm.complete(prompt, system=WRITER_SYSTEM, max_tokens=max_tokens, temperature=0.7)
            return result.unwrap(self.llm.default_provider).content

        return await with_agent_retry(call, retries=1, agent=agent, provider=self.llm.default_provider)

    async def _research(self, request: ContentRequest) -> Dict[str, Any]:
        if self.perplexity is None:
            return {"summary": "", "citations": []}
        result = await self.perplexity.research_topic(request.topic, request.keywords)
        if not result.success:
            logger.warning(f"Research failed, writing without it: {result.error.code} {result.error.message}")
            return {"summary": "", "citations": []}
        return {"summary": result.data.answer, "citations": result.data.citations}

    async def _review(self, request: ContentRequest, draft: str) -> Dict[str, Any]:
        prompt = QA_PROMPT.format(content_type=request.type, keyword=request.target_keyword, draft=draft)

        async def call():
            result = await self.llm.complete_json(prompt, system=QA_SYSTEM, max_tokens=2000, temperature=0.1)
            report = result.unwrap(self.llm.default_provider)
            if not isinstance(report, dict):
                raise ProviderError("QA report was not a JSON object", provider=self.llm.default_provider)
            return report

        return await with_agent_retry(call, retries=1, agent="eeat_qa", provider=self.llm.default_provider)

    async def generate_content(
        self,
        request: ContentRequest,
        on_progress: Optional[ProgressCallback] = None,
        abort_event: Optional[asyncio.Event] = None,
        persist: Optional[PersistCallback] = None,
        on_progress_error: Optional[ProgressErrorCallback] = None,
    ) -> ContentResult:
        """
        Generate an article.

        Args:
            request: What to write
            on_progress: Called with a ProgressUpdate at every phase change
            abort_event: Set it to stop the run at the next phase boundary
            persist: Stores the draft and final version; returns the content id
            on_progress_error: Called when on_progress itself raises

        Raises:
            AbortError: If abort_event was set
            ProviderError: If writing or QA failed after retries
        """
        emit = functools.partial(self._emit, on_progress, on_progress_error)
        logger.info(f"Starting content generation: {request.topic}")

        # Research
        check_aborted(abort_event, "before research phase")
        await emit("research", "in_progress", "Researching topic...", "Using Perplexity AI")
        research = await self._research(request)
        await emit("research", "completed", "Research complete", f"{len(research['citations'])} sources found")

        # Draft
        check_aborted(abort_event, "before initial draft")
        await emit("writing", "in_progress", "Writing initial draft...",
                   f"Target: {request.word_count or DEFAULT_WORD_COUNT} words")
        draft = await self._write(
            build_writer_prompt(request, research["summary"], research["citations"]),
            request,
            agent="content_writer",
        )
        await emit("writing", "completed", "Initial draft complete", f"{len(draft.split())} words written")

        content_id = None
        if persist is not None:
            check_aborted(abort_event, "before saving draft")
            content_id = await _maybe_await(persist(draft, None, {"status": "draft"}))

        # SEO/AEO syntax
        check_aborted(abort_event, "before syntax analysis")
        await emit("syntax", "in_progress", "Checking SEO/AEO structure...")
        aeo_score = AEO_FALLBACK_SCORE
        syntax: Optional[SyntaxReport] = None
        try:
            syntax = analyze_syntax(draft)
            aeo_score = calculate_aeo_score(syntax)
            await emit("syntax", "completed", "Structure check complete", f"AEO Score: {aeo_score}")
        except ValueError as e:
            logger.warning(f"Syntax analysis failed, using fallback AEO score: {e}")
            await emit("syntax", "completed", "Skipped structure check", f"Using fallback score: {aeo_score}")

        # Scoring / QA / revision loop
        revision_round = 0
        while True:
            check_aborted(abort_event, f"before scoring round {revision_round + 1}")
            await emit("scoring", "in_progress", f"Analyzing content quality (Round {revision_round + 1})...")
            coverage = keyword_coverage_score(draft, request.keywords, request.target_keyword)

            check_aborted(abort_event, f"before QA round {revision_round + 1}")
            await emit("qa", "in_progress", "Running E-E-A-T quality review...")
            qa_report = await self._review(request, draft)

            scores = QualityScores(
                dataforseo=coverage,
                eeat=float(qa_report.get("eeat_score") or 0),
                depth=float(qa_report.get("depth_score") or 0),
                factual=float(qa_report.get("factual_score") or 0),
                aeo=aeo_score,
            )
            scores.overall = calculate_overall_score(scores)
            await emit("qa", "completed", "Quality review complete", f"Overall score: {scores.overall}")

            if not should_revise(scores.overall, revision_round):
                break

            check_aborted(abort_event, f"before revision {revision_round + 1}")
            await emit("revision", "in_progress", f"Revising draft (Round {revision_round + 1})...",
                       f"Score {scores.overall} below {MIN_OVERALL_SCORE}")
            draft = await self._write(build_revision_prompt(request, draft, qa_report), request, agent="content_reviser")
            revision_round += 1
            try:
                syntax = analyze_syntax(draft)
                aeo_score = calculate_aeo_score(syntax)
            except ValueError as e:
                logger.warning(f"Syntax analysis of revision failed: {e}")
                syntax = None
                aeo_score = AEO_FALLBACK_SCORE
            await emit("revision", "completed", "Revision complete", f"{len(draft.split())} words")

        metadata: Dict[str, Any] = {
            "citations": research["citations"],
            "researchSummary": research["summary"][:500],
        }
        if syntax is not None:
            metadata.update({
                "metaTitle": syntax.meta_title,
                "metaDescription": syntax.meta_description,
                "slug": syntax.slug,
                "directAnswer": syntax.direct_answer,
            })

        if persist is not None:
            check_aborted(abort_event, "before saving final content")
            content_id = await _maybe_await(persist(draft, content_id, {
                "seo_score": int(round(scores.overall)),
                "metadata": {**metadata, "qualityScores": scores.to_dict(), "revisionCount": revision_round},
            })) or content_id

        await emit("finished", "completed", "Content generation complete", f"Overall score: {scores.overall}")
        logger.info(f"Content generated for '{request.topic}': overall {scores.overall}, {revision_round} revisions")

        return ContentResult(
            content=draft,
            content_id=content_id,
            quality_scores=scores,
            revision_count=revision_round,
            qa_report=qa_report,
            metadata=metadata,
        )
