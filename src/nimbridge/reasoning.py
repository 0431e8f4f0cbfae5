"""Merging of the backend's reasoning channel into the content channel."""

from typing import Any, Dict, List, Optional, Tuple

THINK_OPEN = "<think>\n"
THINK_CLOSE = "\n</think>\n\n"


def merge_reasoning(reasoning: Optional[str], content: Optional[str], show_reasoning: bool) -> str:
    """
    One-shot merge of a complete reasoning text and a complete answer.

    With ``show_reasoning`` off the reasoning text is dropped.
    """
    content = content or ""
    if show_reasoning and reasoning:
        return f"{THINK_OPEN}{reasoning}{THINK_CLOSE}{content}"
    return content


class ReasoningSplitter:
    """
    Folds streamed ``reasoning_content`` deltas into ``content`` deltas,
    wrapping each reasoning segment in think tags.

    One instance per choice of a stream. ``in_reasoning`` tracks whether an
    open tag has been emitted without its closing tag. With
    ``show_reasoning`` off the splitter only forwards ``content`` and never
    changes state.
    """

    def __init__(self, show_reasoning: bool):
        self.show_reasoning = show_reasoning
        self.in_reasoning = False

    def process(self, delta: Dict[str, Any]) -> Optional[str]:
        """
        Return the content to emit for one delta, or None when there is none.
        """
        reasoning = delta.get("reasoning_content")
        content = delta.get("content")

        if not self.show_reasoning:
            return content or None

        if reasoning:
            if self.in_reasoning:
                return reasoning
            self.in_reasoning = True
            return THINK_OPEN + reasoning

        if content:
            if self.in_reasoning:
                self.in_reasoning = False
                return THINK_CLOSE + content
            return content

        return None

    def close(self) -> Optional[str]:
        """Return the closing tag if a reasoning segment is still open."""
        if not self.in_reasoning:
            return None
        self.in_reasoning = False
        return THINK_CLOSE

    def rewrite_choice(self, choice: Dict[str, Any]) -> None:
        """
        Rewrite one streamed choice's delta in place.

        The rewritten delta carries only ``content`` and ``role`` plus any
        non-text fields such as ``tool_calls``. Choices without a delta are
        left untouched.
        """
        delta = choice.get("delta")
        if not isinstance(delta, dict):
            return

        text = self.process(delta)
        if text is None and choice.get("finish_reason"):
            # Choice finished while its reasoning segment is still open
            text = self.close()

        rewritten: Dict[str, Any] = {}
        if text:
            rewritten["content"] = text
        if delta.get("role") is not None:
            rewritten["role"] = delta["role"]
        for key, value in delta.items():
            if key not in ("content", "reasoning_content", "role"):
                rewritten[key] = value

        choice["delta"] = rewritten


class EventRewriter:
    """
    Applies reasoning splitting to every choice of a stream's events,
    keeping one ``ReasoningSplitter`` per choice index.
    """

    def __init__(self, show_reasoning: bool):
        self.show_reasoning = show_reasoning
        self.splitters: Dict[int, ReasoningSplitter] = {}

    @property
    def in_reasoning(self) -> bool:
        return any(splitter.in_reasoning for splitter in self.splitters.values())

    def splitter_for(self, index: int) -> ReasoningSplitter:
        if index not in self.splitters:
            self.splitters[index] = ReasoningSplitter(self.show_reasoning)
        return self.splitters[index]

    def apply_to_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Rewrite the deltas of a decoded stream event in place.

        ``reasoning_content`` is never passed on for any choice. Events
        without choices are returned untouched.
        """
        choices = event.get("choices")
        if not isinstance(choices, list):
            return event

        for position, choice in enumerate(choices):
            if not isinstance(choice, dict):
                continue
            index = choice.get("index")
            if not isinstance(index, int):
                index = position
            self.splitter_for(index).rewrite_choice(choice)
        return event

    def close(self) -> List[Tuple[int, str]]:
        """Close every open reasoning segment, returning (index, tag) pairs."""
        closed = []
        for index in sorted(self.splitters):
            text = self.splitters[index].close()
            if text is not None:
                closed.append((index, text))
        return closed
