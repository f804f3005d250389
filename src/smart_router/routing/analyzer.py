"""Task analysis for model routing in Smart Router.

The analyzer turns a raw completion request (prompt plus optional context)
into a TaskAnalysis: a complexity score, a task type, a token estimate and
three independent content flags. It never fails; empty or oversized input
degrades to bounded, minimal-complexity results.

Complexity Signals (summed, then clamped to 0.0-1.0):
- Length: proportional to the estimated token count, capped
- Code: fixed increment when a code block or code-like syntax is present
- Errors: fixed increment when error or stack-trace markers are present
- Reasoning: increment scaled by the amount of analytical language

Task Type Priority (first match wins):
    debugging > code > reasoning > writing > query (default)

Usage:
    from smart_router.routing.analyzer import analyze_task

    analysis = analyze_task("Fix this error: TypeError: x is undefined")
    print(analysis.task_type.value, f"{analysis.complexity_score:.2f}")
"""

from dataclasses import dataclass, field
import math
import re

from smart_router.config.models import AnalyzerConfig
from smart_router.core.security import (
    MAX_CONTEXT_LENGTH,
    MAX_PROMPT_LENGTH,
    truncate_input,
)
from smart_router.core.types import TaskType, clamp_unit
from smart_router.observability.logging import get_logger

log = get_logger(__name__)


_CODE_SYNTAX = [
    re.compile(r"```"),
    re.compile(
        r"\b(def|class|function|const|let|var|import|return|public|private|static|"
        r"void|async|await|struct|fn|func|interface|enum)\s+[A-Za-z_]"
    ),
    re.compile(r"=>|->|::|===|!==|\+=|&&|\|\|"),
    re.compile(r"[{};]\s*$", re.MULTILINE),
    re.compile(r"\b[A-Za-z_]\w*\([^()\n]*\)\s*[{:;]"),
    re.compile(r"\b[A-Za-z_]\w*\.(js|jsx|ts|tsx|py|java|rb|go|rs|cpp|cc|c|h|cs|php|kt|swift)\b"),
    re.compile(r"\b(undefined|null|NaN|nullptr|None|True|False)\b"),
    re.compile(r"</?[a-z][a-z0-9]*(\s[^<>]*)?>"),
]

_ERROR_MARKERS = [
    re.compile(r"\b\w*(error|exception)\b", re.IGNORECASE),
    re.compile(r"\btraceback\b|\bstack ?trace\b", re.IGNORECASE),
    re.compile(r"\bline \d+\b", re.IGNORECASE),
    re.compile(r'File ".+", line \d+'),
    re.compile(r"^\s+at \S+", re.MULTILINE),
    re.compile(r"\b(segfault|segmentation fault|panic(ked)?|core dumped)\b", re.IGNORECASE),
    re.compile(r"\b(crash(es|ed|ing)?|fail(s|ed|ing|ure)?)\b", re.IGNORECASE),
]

_DATA_MARKERS = [
    re.compile(
        r"\b(csv|json|xml|yaml|dataset|datasets|dataframe|spreadsheet|table|tables|"
        r"rows?|columns?|records?|database|sql|metrics|statistics)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d+(\.\d+)?\s?(k|m|b|million|billion|thousand|%)(?![a-z])", re.IGNORECASE),
]

_ANALYTICAL_MARKERS = re.compile(
    r"\b(analy[sz]e|analysis|compare|comparison|contrast|trade-?offs?|evaluate|assess|"
    r"consider|pros and cons|implications?|reason(ing)?|why|justify|strategy|"
    r"architecture|design|optimi[sz]e|versus|vs\.?|step by step|weigh|"
    r"because|however|therefore|whereas|although)\b",
    re.IGNORECASE,
)

_TYPE_PATTERNS: list[tuple[TaskType, re.Pattern[str]]] = [
    (
        TaskType.DEBUGGING,
        re.compile(
            r"\b(debug(ging)?|fix(es|ing)?|bugs?|broken|crash(es|ed|ing)?|traceback|"
            r"stack ?trace|not working|doesn'?t work|fails?|failing|\w*error|\w*exception)\b",
            re.IGNORECASE,
        ),
    ),
    (
        TaskType.CODE,
        re.compile(
            r"```|\b(code|function|class|method|implement(ation)?|refactor|script|program|"
            r"algorithm|api|endpoint|regex|compile|unit tests?|snippet)\b",
            re.IGNORECASE,
        ),
    ),
    (
        TaskType.REASONING,
        re.compile(
            r"\b(analy[sz]e|compare|contrast|trade-?offs?|evaluate|assess|pros and cons|"
            r"reason(ing)?|why|justify|strategy|decide|should (i|we))\b",
            re.IGNORECASE,
        ),
    ),
    (
        TaskType.WRITING,
        re.compile(
            r"\b(write|draft|compose|rewrite|essay|article|blog|story|poem|e-?mail|letter|"
            r"readme|documentation|docs|summar(y|ize|ise)|proofread|paragraph)\b",
            re.IGNORECASE,
        ),
    ),
]


@dataclass(frozen=True, slots=True)
class TaskAnalysis:
    """Features extracted from one completion request.

    Attributes:
        complexity_score: Heuristic difficulty, 0.0-1.0.
        task_type: First matching category in priority order.
        estimated_tokens: Combined input length divided by chars-per-token.
        has_code: Code block or code-like syntax present.
        has_errors: Error or stack-trace markers present.
        has_data: Data-oriented vocabulary or quantities present.
        context_length: Number of characters of context supplied.
        breakdown: Contribution of each complexity signal.
    """

    complexity_score: float
    task_type: TaskType
    estimated_tokens: int
    has_code: bool
    has_errors: bool
    has_data: bool
    context_length: int
    breakdown: dict[str, float] = field(default_factory=dict)


def _matches_any(patterns: list[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def estimate_tokens(char_count: int, chars_per_token: int) -> int:
    """Estimate tokens for ``char_count`` characters (rounded up)."""
    if char_count <= 0:
        return 0
    return math.ceil(char_count / chars_per_token)


def classify_task(text: str, *, has_code: bool = False, has_errors: bool = False) -> TaskType:
    """Return the first task type whose patterns match ``text``.

    Error markers and code-like syntax detected elsewhere (for instance in
    the context) count as evidence for debugging and code at the same
    priority as their keywords.
    """
    evidence = {TaskType.DEBUGGING: has_errors, TaskType.CODE: has_code}
    for task_type, pattern in _TYPE_PATTERNS:
        if evidence.get(task_type) or pattern.search(text):
            return task_type
    return TaskType.QUERY


class TaskAnalyzer:
    """Extracts TaskAnalysis features using a fixed AnalyzerConfig."""

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        self._config = config or AnalyzerConfig()

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    def analyze(self, prompt: str | None, context: str | None = None) -> TaskAnalysis:
        """Analyze a request.

        Args:
            prompt: The request prompt. None or empty is allowed.
            context: Optional supporting context (code, logs, documents).

        Returns:
            TaskAnalysis for the request.
        """
        cfg = self._config
        prompt_text = truncate_input(prompt, MAX_PROMPT_LENGTH)
        context_text = truncate_input(context, MAX_CONTEXT_LENGTH)
        combined = f"{prompt_text}\n{context_text}" if context_text else prompt_text

        estimated = estimate_tokens(len(prompt_text) + len(context_text), cfg.chars_per_token)

        has_code = _matches_any(_CODE_SYNTAX, combined)
        has_errors = _matches_any(_ERROR_MARKERS, combined)
        has_data = _matches_any(_DATA_MARKERS, combined)
        analytical_hits = len({m.group(0).lower() for m in _ANALYTICAL_MARKERS.finditer(combined)})

        length_signal = min(estimated, cfg.length_token_cap) / cfg.length_token_cap * cfg.length_weight
        code_signal = cfg.code_increment if has_code else 0.0
        error_signal = cfg.error_increment if has_errors else 0.0
        reasoning_signal = (
            min(analytical_hits, cfg.reasoning_saturation)
            / cfg.reasoning_saturation
            * cfg.reasoning_increment
        )

        score = clamp_unit(length_signal + code_signal + error_signal + reasoning_signal)
        task_type = classify_task(
            prompt_text or combined, has_code=has_code, has_errors=has_errors
        )

        analysis = TaskAnalysis(
            complexity_score=score,
            task_type=task_type,
            estimated_tokens=estimated,
            has_code=has_code,
            has_errors=has_errors,
            has_data=has_data,
            context_length=len(context_text),
            breakdown={
                "length": length_signal,
                "code": code_signal,
                "errors": error_signal,
                "reasoning": reasoning_signal,
            },
        )

        log.debug(
            "analyzer.task.analyzed",
            task_type=task_type.value,
            complexity_score=score,
            estimated_tokens=estimated,
            has_code=has_code,
            has_errors=has_errors,
            has_data=has_data,
        )

        return analysis


def analyze_task(
    prompt: str | None,
    context: str | None = None,
    *,
    config: AnalyzerConfig | None = None,
) -> TaskAnalysis:
    """Convenience function to analyze a request without keeping an analyzer.

    Example:
        analysis = analyze_task("What is JavaScript?")
        assert analysis.task_type == TaskType.QUERY
    """
    return TaskAnalyzer(config).analyze(prompt, context)
