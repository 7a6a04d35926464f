from __future__ import annotations

import pytest

from mcp_mermaid_renderer.engine.fences import strip_markdown_fences


def test_mermaid_fence_is_removed():
    assert strip_markdown_fences("```mermaid\nflowchart TD\nA-->B\n```") == "flowchart TD\nA-->B"


def test_untagged_and_graphviz_fences_are_removed():
    assert strip_markdown_fences("```\nA-->B\n```") == "A-->B"
    assert strip_markdown_fences("```graphviz\ndigraph { a -> b }\n```") == "digraph { a -> b }"


def test_unfenced_text_is_only_trimmed():
    assert strip_markdown_fences("  \n flowchart TD\nA-->B \n") == "flowchart TD\nA-->B"


def test_text_around_a_fence_is_not_unwrapped():
    text = "Here you go:\n```mermaid\nA-->B\n```"
    assert strip_markdown_fences(text) == text


def test_none_and_blank_give_empty_string():
    assert strip_markdown_fences(None) == ""  # type: ignore[arg-type]
    assert strip_markdown_fences("   \n\t") == ""


@pytest.mark.parametrize(
    "text",
    [
        "A-->B",
        "  ```mermaid\nsequenceDiagram\nA->>B: hi\n```  ",
        "```\n```mermaid\nA-->B\n```\n```",
        "```mermaid\n```",
        "plain ``` in the middle",
    ],
)
def test_stripping_is_idempotent(text):
    once = strip_markdown_fences(text)
    assert strip_markdown_fences(once) == once
