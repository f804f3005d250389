"""Unit tests for the task analyzer.

Tests cover:
- The reference query and debugging examples
- Task type priority (debugging > code > reasoning > writing > query)
- Independent content flags
- Token estimation and the length signal
- Degenerate input (empty, None, oversized)
"""

import pytest

from smart_router.config.models import AnalyzerConfig
from smart_router.core.security import MAX_PROMPT_LENGTH
from smart_router.routing.analyzer import (
    TaskAnalysis,
    TaskAnalyzer,
    TaskType,
    analyze_task,
    classify_task,
    estimate_tokens,
)


class TestReferenceExamples:
    def test_simple_question_is_low_complexity_query(self) -> None:
        analysis = analyze_task("What is JavaScript?", "")
        assert analysis.task_type == TaskType.QUERY
        assert 0.0 <= analysis.complexity_score <= 0.4
        assert not analysis.has_code
        assert not analysis.has_errors

    def test_error_report_is_high_complexity_debugging(self) -> None:
        analysis = analyze_task(
            "Fix this error: TypeError: Cannot read property of undefined",
            "Error at line 42",
        )
        assert analysis.task_type == TaskType.DEBUGGING
        assert 0.6 <= analysis.complexity_score <= 1.0
        assert analysis.has_errors
        assert analysis.has_code


class TestTaskTypePriority:
    @pytest.mark.parametrize(
        ("prompt", "expected"),
        [
            ("Refactor this function and fix the bug in it", TaskType.DEBUGGING),
            ("Implement a function that parses dates", TaskType.CODE),
            ("Compare the tradeoffs of Postgres and MongoDB", TaskType.REASONING),
            ("Write a blog post about gardening", TaskType.WRITING),
            ("Write a function to reverse a list", TaskType.CODE),
            ("Why should we analyze this essay?", TaskType.REASONING),
            ("Capital of France?", TaskType.QUERY),
        ],
    )
    def test_first_matching_category_wins(self, prompt: str, expected: TaskType) -> None:
        assert analyze_task(prompt).task_type == expected

    def test_code_syntax_without_keywords_is_code(self) -> None:
        assert classify_task("const x = 1;", has_code=True) == TaskType.CODE

    def test_error_markers_without_keywords_are_debugging(self) -> None:
        assert classify_task("look at this", has_errors=True) == TaskType.DEBUGGING
        assert classify_task("look at this", has_code=True, has_errors=True) == TaskType.DEBUGGING

    def test_traceback_in_context_outranks_code_in_context(self) -> None:
        trace = 'Traceback (most recent call last):\n  File "app.py", line 3\nValueError: bad value'
        analysis = analyze_task("Can you help me with this?", trace)
        assert analysis.has_code
        assert analysis.has_errors
        assert analysis.task_type == TaskType.DEBUGGING

    def test_every_result_is_a_known_type(self) -> None:
        for prompt in ("", "hello", "debug it", "draft an email", "pros and cons?"):
            assert analyze_task(prompt).task_type in set(TaskType)


class TestContentFlags:
    def test_code_block_detected(self) -> None:
        analysis = analyze_task("Explain this", "```python\nprint('hi')\n```")
        assert analysis.has_code
        assert analysis.breakdown["code"] == pytest.approx(0.3)

    def test_stack_trace_detected(self) -> None:
        trace = 'Traceback (most recent call last):\n  File "app.py", line 3, in <module>'
        assert analyze_task("What happened?", trace).has_errors

    def test_data_detected(self) -> None:
        assert analyze_task("Summarize this CSV of 10M transactions").has_data
        assert not analyze_task("What is JavaScript?").has_data

    def test_flags_are_independent_of_type(self) -> None:
        analysis = analyze_task("Write an article about JSON", "")
        assert analysis.task_type == TaskType.WRITING
        assert analysis.has_data


class TestScoring:
    def test_reasoning_signal_scales_with_markers(self) -> None:
        one = analyze_task("Why?")
        many = analyze_task("Analyze and compare the tradeoffs; consider the strategy.")
        assert 0.0 < one.breakdown["reasoning"] < many.breakdown["reasoning"]
        assert many.breakdown["reasoning"] == pytest.approx(0.3)

    def test_length_signal_is_capped(self) -> None:
        analysis = analyze_task("a" * 20_000)
        assert analysis.estimated_tokens == 5000
        assert analysis.breakdown["length"] == pytest.approx(0.3)

    def test_score_is_clamped(self) -> None:
        config = AnalyzerConfig(code_increment=1.0, error_increment=1.0)
        analysis = TaskAnalyzer(config).analyze("Fix TypeError in def main(): return None")
        assert analysis.complexity_score == 1.0

    def test_estimate_tokens_rounds_up(self) -> None:
        assert estimate_tokens(0, 4) == 0
        assert estimate_tokens(1, 4) == 1
        assert estimate_tokens(8, 4) == 2
        assert estimate_tokens(9, 4) == 3

    def test_deterministic(self) -> None:
        prompt = "Compare these two designs and explain why one is better"
        assert analyze_task(prompt) == analyze_task(prompt)


class TestDegenerateInput:
    @pytest.mark.parametrize("prompt", ["", None])
    def test_empty_prompt(self, prompt: str | None) -> None:
        analysis = analyze_task(prompt, None)
        assert analysis.task_type == TaskType.QUERY
        assert analysis.complexity_score == 0.0
        assert analysis.estimated_tokens == 0
        assert analysis.context_length == 0

    def test_oversized_prompt_is_truncated(self) -> None:
        analysis = analyze_task("x" * (MAX_PROMPT_LENGTH + 1000))
        assert analysis.estimated_tokens == MAX_PROMPT_LENGTH // 4

    def test_context_length_counts_context_characters(self) -> None:
        assert analyze_task("Explain", "z" * 2500).context_length == 2500

    def test_analysis_is_immutable(self) -> None:
        analysis: TaskAnalysis = analyze_task("hello")
        with pytest.raises(AttributeError):
            analysis.task_type = TaskType.CODE  # type: ignore[misc]
