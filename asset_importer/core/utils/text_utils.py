import re


def get_base_name(filename: str) -> str:
    """Return the filename without its last extension ("a.b.zip" -> "a.b")."""
    last_dot = filename.rfind(".")
    if last_dot == -1:
        return filename
    return filename[:last_dot]


def get_extension(filename: str) -> str:
    """Return the lowercase extension without the dot, or "" if there is none."""
    last_dot = filename.rfind(".")
    if last_dot == -1:
        return ""
    return filename[last_dot + 1:].lower()


def safe_object_name(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9._-] with an underscore."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", filename)


def humanize_filename(filename: str) -> str:
    """
    Turn a file name into a title-cased product name.

    "summer_beach-poster.zip" -> "Summer Beach Poster"
    """
    stem = re.sub(r"\.[^/.]+$", "", filename)
    stem = re.sub(r"[-_]", " ", stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), stem).strip()


def filename_keywords(filename: str, limit: int = 5) -> list:
    """Split a file stem on '-' and '_' into up to ``limit`` keywords."""
    stem = re.sub(r"\.[^/.]+$", "", filename)
    return [part for part in re.split(r"[-_]", stem) if part][:limit]


def clean_llm_response(text: str) -> str:
    """
    Strip markdown code block wrappers an LLM may put around a JSON answer.
    """
    if not text:
        return text

    text = re.sub(r'^```(?:json|JSON)?\s*\n', '', text, flags=re.MULTILINE)
    text = re.sub(r'\n```\s*$', '', text, flags=re.MULTILINE)
    text = re.sub(r'^```(?:json|JSON)?\s*', '', text)
    text = re.sub(r'```\s*$', '', text)

    return text.strip()
