"""
Attachment resolver.

Maps the order's note attributes (one per generated image) to canonical
short names and tells which ones still need to be emailed.

Short names end up inside `sent:img:<shortName>` tags, so they must be a
pure function of each item's own file reference: a redelivery of the same
event, or a later event carrying more files, recomputes the same names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from urllib.parse import unquote, urlparse

from app.models.order import Attachment
from app.services.tag_codec import TagState


class AttachmentStatus(str, Enum):
    PENDING = "pending"   # no file uploaded yet
    UNSENT = "unsent"     # file uploaded, not yet emailed
    SENT = "sent"         # already emailed (sent:img marker present)


@dataclass(frozen=True)
class ResolvedAttachment:
    index: int                 # 0-based position in the note attributes
    name: str
    file_ref: Optional[str]
    short_name: Optional[str]
    status: AttachmentStatus


def _path_segments(file_ref: str) -> list[str]:
    parsed = urlparse(file_ref)
    path = parsed.path if parsed.scheme else file_ref.split("?", 1)[0].split("#", 1)[0]
    return [unquote(s) for s in path.split("/") if s]


def short_name_for(file_ref: str) -> str:
    """
    Short name of a file reference: `<parent>-<last>` path segments.

    Query and fragment are ignored. A reference with a single path segment
    keeps just that segment. Commas are replaced, they would split the tag
    when Shopify re-joins the tag list.
    """
    segments = _path_segments(file_ref)
    if len(segments) >= 2:
        name = f"{segments[-2]}-{segments[-1]}"
    elif segments:
        name = segments[-1]
    else:
        name = file_ref
    return name.replace(",", "_").strip()


class AttachmentResolver:
    """Resolved view over an order's attachments."""

    def __init__(self, attachments: Sequence[Attachment], tag_state: TagState):
        items: list[ResolvedAttachment] = []
        for index, attachment in enumerate(attachments):
            short_name: Optional[str] = None
            if attachment.file_ref:
                short_name = short_name_for(attachment.file_ref)

            if not attachment.file_ref:
                status = AttachmentStatus.PENDING
            elif tag_state.has_sent(short_name):
                status = AttachmentStatus.SENT
            else:
                status = AttachmentStatus.UNSENT

            items.append(
                ResolvedAttachment(
                    index=index,
                    name=attachment.name,
                    file_ref=attachment.file_ref,
                    short_name=short_name,
                    status=status,
                )
            )
        self._items = tuple(items)

    @property
    def items(self) -> tuple[ResolvedAttachment, ...]:
        return self._items

    @property
    def total(self) -> int:
        return len(self._items)

    def count_resolved(self) -> int:
        """Number of attachments that have a file reference."""
        return sum(1 for item in self._items if item.status != AttachmentStatus.PENDING)

    def unsent(self) -> list[ResolvedAttachment]:
        return [item for item in self._items if item.status == AttachmentStatus.UNSENT]
