"""Text helpers shared by providers and the stream dispatcher."""


def estimate_tokens(text: str | None) -> int:
    """Rough token count: about four characters per token, at least one."""
    if not text or not text.strip():
        return 0
    return max(1, len(text) // 4)


def chunk_text(text: str, size: int) -> list[str]:
    """Split text into fixed-size pieces; blank text yields nothing."""
    if not text or not text.strip():
        return []
    return [text[i : i + size] for i in range(0, len(text), size)]
