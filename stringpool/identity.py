import hashlib

KEY_LENGTH = 16


def compute_key(kind, canonical_text: str) -> str:
    """
    Content-based key for a translation unit.

    sha256("<Kind>:<text>") truncated to 16 lowercase hex chars. Location plays
    no part, so the same text found in two files shares one key, while the same
    text as a literal and as a template gets two.
    """
    kind_name = getattr(kind, "value", kind)
    digest = hashlib.sha256(f"{kind_name}:{canonical_text}".encode("utf-8")).hexdigest()
    return digest[:KEY_LENGTH]
