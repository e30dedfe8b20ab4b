"""
Text normalization for raw terminal output.

This is a lossy filter, not a terminal emulator: escape sequences and
shell-integration telemetry are dropped and whatever readable text remains
is kept as trimmed lines.
"""

import re

# ESC ] ... terminated by BEL or ESC \
OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
# ESC [ params intermediates final, or a two-byte ESC @.._ escape
CSI_RE = re.compile(r"\x1b(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
# Keypad application/normal mode
KEYPAD_RE = re.compile(r"\x1b[=>]")
BACKSPACE_RE = re.compile(r"[^\x08\n]\x08")
CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f]")
SPACES_RE = re.compile(r" {2,}")

NUMERIC_PAYLOAD_RE = re.compile(r"^\d+;")
PROMPT_GLYPHS = frozenset({"$", "%", "#", ">", "➜", "❯", "âžœ"})
SHELL_MARKERS = (
    "OSCLock=",
    "OSCUnlock=",
    "StartPrompt",
    "EndPrompt",
    "PreExec",
    "NewCmd=",
)


def strip_escapes(text: str) -> str:
    """
    Remove escape sequences and control bytes, keeping newlines.

    Tabs become single spaces and runs of spaces collapse to one. Applying
    this twice gives the same result as applying it once.
    """
    text = OSC_RE.sub("", text)
    text = CSI_RE.sub("", text)
    text = KEYPAD_RE.sub("", text)
    text = text.replace("\x07", "").replace("\r", "")
    erased = 1
    while erased:
        text, erased = BACKSPACE_RE.subn("", text)
    text = text.replace("\t", " ")
    text = CONTROL_RE.sub("", text)
    return SPACES_RE.sub(" ", text)


def is_noise_line(line: str) -> bool:
    """Return whether a trimmed line is shell-integration noise."""
    if NUMERIC_PAYLOAD_RE.match(line):
        return True
    if line in PROMPT_GLYPHS:
        return True
    return any(marker in line for marker in SHELL_MARKERS)


def normalize_chunk(chunk: bytes | str) -> list[str]:
    """
    Turn one raw chunk of terminal output into storable lines.

    Args:
        chunk: Raw output. Bytes are decoded as UTF-8, invalid sequences
            replaced.

    Returns:
        Trimmed, non-empty, non-noise lines in their original order.
    """
    if isinstance(chunk, bytes):
        chunk = chunk.decode("utf-8", errors="replace")

    lines = []
    for line in strip_escapes(chunk).split("\n"):
        line = line.strip()
        if line and not is_noise_line(line):
            lines.append(line)
    return lines
