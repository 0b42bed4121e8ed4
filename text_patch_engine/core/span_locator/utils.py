def extract_context(content: str, index: int, length: int, radius: int) -> str:
    """
    Return the matched span with up to `radius` characters on each side.
    "..." marks each side that was cut short of the document edge.
    """
    start = max(0, index - radius)
    end = min(len(content), index + length + radius)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(content) else ""
    return f"{prefix}{content[start:end]}{suffix}"


def preview(text, max_len: int = 160) -> str:
    if not text:
        return ""
    return text if len(text) <= max_len else text[: max_len - 3] + "..."
