"""
Text processing for assistant output bound for Discord.

- Splitting messages under Discord's 2000-character limit
- Extracting absolute paths of shareable files from free text
- Removing those paths from the visible text once they are attached
"""

import re

DISCORD_MAX_MESSAGE_LENGTH = 2000

FILE_EXTENSIONS = (
    "png",
    "jpg",
    "jpeg",
    "gif",
    "webp",
    "svg",
    "bmp",
    "pdf",
    "docx",
    "pptx",
    "xlsx",
    "csv",
    "json",
    "txt",
)

FILE_PATH_PATTERN = re.compile(
    r"""(?:^|[\s`"'(\[])"""
    r"""(/[^\s`"')\]]+\.(?:""" + "|".join(FILE_EXTENSIONS) + r"""))"""
    r"""(?=$|[\s`"')\].,;:!?])""",
    re.IGNORECASE,
)
EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")
WHITESPACE_LINE_PATTERN = re.compile(r"^[ \t]+$", re.MULTILINE)


def split_message_for_discord(message: str) -> list[str]:
    """Split a message into chunks that respect Discord's 2000-character limit.

    Cuts after the last newline when that keeps at least half a message in
    the chunk, otherwise after the last space, otherwise mid-word. Joining
    the chunks gives back the original message.
    """
    if not message:
        return []
    if len(message) <= DISCORD_MAX_MESSAGE_LENGTH:
        return [message]

    chunks: list[str] = []
    remaining = message

    while remaining:
        if len(remaining) <= DISCORD_MAX_MESSAGE_LENGTH:
            chunks.append(remaining)
            break

        search_area = remaining[:DISCORD_MAX_MESSAGE_LENGTH]
        newline = search_area.rfind("\n")
        space = search_area.rfind(" ")

        if newline >= DISCORD_MAX_MESSAGE_LENGTH // 2:
            chunk_end = newline + 1
        elif space != -1:
            chunk_end = space + 1
        else:
            chunk_end = DISCORD_MAX_MESSAGE_LENGTH

        chunks.append(remaining[:chunk_end])
        remaining = remaining[chunk_end:]

    return chunks


def extract_file_paths(text: str) -> list[str]:
    """Absolute paths with a shareable extension, in first-seen order."""
    paths: dict[str, None] = {}
    for match in FILE_PATH_PATTERN.finditer(text):
        paths.setdefault(match.group(1), None)
    return list(paths)


def strip_file_paths(text: str, file_paths: list[str]) -> str:
    """Remove file paths from user-visible text.

    Each path is removed as a markdown image, then in backticks, then bare.
    Lines left holding only spaces or tabs are emptied and runs of blank
    lines are collapsed to one.
    """
    result = text

    for path in file_paths:
        escaped = re.escape(path)
        result = re.sub(rf"!\[[^\]]*\]\({escaped}\)", "", result)
        result = re.sub(rf"`{escaped}`", "", result)
        result = result.replace(path, "")

    result = WHITESPACE_LINE_PATTERN.sub("", result)
    return EXCESS_NEWLINES_PATTERN.sub("\n\n", result)
