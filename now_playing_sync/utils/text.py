"""Display string normalization."""


def smart_lowercase(text: str) -> str:
    """Lowercase a display string unless its letters are all uppercase.

    All-caps titles ("HUMBLE.", "DNA.") are a stylistic choice and are kept.
    Everything else is case-folded to lowercase. Non-letters are ignored when
    deciding. Applying the function to its own output is a no-op.
    """
    if not text:
        return ""
    letters = [char for char in text if char.isalpha()]
    if letters and all(char.isupper() for char in letters):
        return text
    return text.lower()
