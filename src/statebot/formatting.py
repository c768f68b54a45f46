"""Human-readable rendering of state records."""

from .models import StateRecord


def format_state(record: StateRecord) -> str:
    """One-line summary of the current state."""
    state = record.current_state or "(none)"
    text = f"state: {state} (confidence {record.confidence:.2f}, {len(record.facts)} fact(s))"
    if record.error:
        text += f"\n⚠ last determination failed: {record.error}"
    return text


def format_facts(record: StateRecord) -> str:
    """Numbered list of active facts."""
    if not record.facts:
        return "No facts."
    return "\n".join(f"{i}. {fact}" for i, fact in enumerate(record.facts, start=1))


def format_history(record: StateRecord, limit: int = 10) -> str:
    """The most recent transitions, oldest first."""
    if not record.transitions:
        return "No transitions yet."

    lines = []
    for t in record.transitions[-limit:]:
        when = t.timestamp.strftime("%H:%M:%S")
        lines.append(f"[{when}] {t.from_state or '(none)'} → {t.to_state}")
    return "\n".join(lines)


def describe_change(old: StateRecord | None, new: StateRecord) -> str | None:
    """Describe what a subscriber should announce, or None if nothing.

    Announces new transitions, cleared states, and newly recorded errors.
    """
    if old is None:
        return None

    if len(new.transitions) > len(old.transitions):
        t = new.transitions[-1]
        return (
            f"→ {t.from_state or '(none)'} → {t.to_state} "
            f"(confidence {new.confidence:.2f})"
        )

    if old.current_state is not None and new.current_state is None:
        return "→ state cleared"

    if new.error and new.error != old.error:
        return f"⚠ determination failed: {new.error}"

    return None
