"""
Order tag codec.

The order's tags are the only persisted state of the reconciliation. This
module is the single place that knows their string format; everything else
works with the typed markers below.

Vocabulary
----------
  notification           NotificationMarker   reminder armed
  timer:<epoch-ms>       TimerMarker          reminder deadline
  sent:img:<shortName>   SentImageMarker      attachment already emailed
  notified               NotifiedMarker       reminder confirmed (read-only here)
  Entregue               DeliveredMarker      terminal: order fully processed
  anything else          PlainTag             passed through unchanged

Public API:
  decode(tags) -> TagState
  encode(markers) -> str
  parse_tag(token) -> Marker
  to_tag_list(markers) -> list[str]
  normalized(tags) -> tuple[str, ...]
  split_tags(tags) -> list[str]
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Union


TAG_DELIMITER = ", "

NOTIFICATION_TAG = "notification"
NOTIFIED_TAG = "notified"
DELIVERED_TAG = "Entregue"
TIMER_PREFIX = "timer:"
SENT_IMAGE_PREFIX = "sent:img:"


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotificationMarker:
    def to_tag(self) -> str:
        return NOTIFICATION_TAG


@dataclass(frozen=True)
class TimerMarker:
    deadline_ms: int

    def to_tag(self) -> str:
        return f"{TIMER_PREFIX}{self.deadline_ms}"


@dataclass(frozen=True)
class SentImageMarker:
    short_name: str

    def to_tag(self) -> str:
        return f"{SENT_IMAGE_PREFIX}{self.short_name}"


@dataclass(frozen=True)
class NotifiedMarker:
    def to_tag(self) -> str:
        return NOTIFIED_TAG


@dataclass(frozen=True)
class DeliveredMarker:
    def to_tag(self) -> str:
        return DELIVERED_TAG


@dataclass(frozen=True)
class PlainTag:
    value: str

    def to_tag(self) -> str:
        return self.value


Marker = Union[
    NotificationMarker,
    TimerMarker,
    SentImageMarker,
    NotifiedMarker,
    DeliveredMarker,
    PlainTag,
]

# Markers the terminal transition strips from the order
_TRANSIENT_TYPES = (NotificationMarker, TimerMarker, SentImageMarker, NotifiedMarker)


def is_transient(marker: Marker) -> bool:
    return isinstance(marker, _TRANSIENT_TYPES)


def parse_tag(token: str) -> Marker:
    """Classify a single tag by exact match or prefix."""
    if token == NOTIFICATION_TAG:
        return NotificationMarker()
    if token == NOTIFIED_TAG:
        return NotifiedMarker()
    if token == DELIVERED_TAG:
        return DeliveredMarker()
    if token.startswith(TIMER_PREFIX):
        suffix = token[len(TIMER_PREFIX):]
        if suffix.isascii() and suffix.isdigit():
            return TimerMarker(int(suffix))
        # Malformed deadline: keep it verbatim rather than lose it
        return PlainTag(token)
    if token.startswith(SENT_IMAGE_PREFIX) and len(token) > len(SENT_IMAGE_PREFIX):
        return SentImageMarker(token[len(SENT_IMAGE_PREFIX):])
    return PlainTag(token)


# ---------------------------------------------------------------------------
# Decoded state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TagState:
    """Typed view of an order's tag set."""

    markers: tuple[Marker, ...]
    has_notification: bool
    timer_deadline: Optional[int]
    sent_markers: frozenset[str]
    is_notified: bool
    is_delivered: bool

    def has_sent(self, short_name: str) -> bool:
        return short_name in self.sent_markers

    def to_tags(self) -> list[str]:
        return to_tag_list(self.markers)


def split_tags(tags: Union[str, Iterable[str], None]) -> list[str]:
    """Split Shopify's comma-joined tag string into trimmed, non-empty tokens."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tokens = tags.split(",")
    else:
        tokens = list(tags)
    return [t.strip() for t in tokens if t and t.strip()]


def decode(tags: Union[str, Iterable[str], None]) -> TagState:
    """
    Decode a tag string (or list of tags) into a TagState.

    Duplicate tokens collapse to one marker; first-seen order is kept.
    """
    markers: list[Marker] = []
    seen: set[Marker] = set()
    for token in split_tags(tags):
        marker = parse_tag(token)
        if marker not in seen:
            seen.add(marker)
            markers.append(marker)

    timers = [m.deadline_ms for m in markers if isinstance(m, TimerMarker)]

    return TagState(
        markers=tuple(markers),
        has_notification=any(isinstance(m, NotificationMarker) for m in markers),
        timer_deadline=max(timers) if timers else None,
        sent_markers=frozenset(
            m.short_name for m in markers if isinstance(m, SentImageMarker)
        ),
        is_notified=any(isinstance(m, NotifiedMarker) for m in markers),
        is_delivered=any(isinstance(m, DeliveredMarker) for m in markers),
    )


def to_tag_list(markers: Iterable[Marker]) -> list[str]:
    """Serialize markers to tag strings, dropping duplicates."""
    tags: list[str] = []
    for marker in markers:
        tag = marker.to_tag()
        if tag not in tags:
            tags.append(tag)
    return tags


def encode(markers: Iterable[Marker]) -> str:
    """Serialize markers to the comma-space joined tag string."""
    return TAG_DELIMITER.join(to_tag_list(markers))


def normalized(tags: Iterable[str]) -> tuple[str, ...]:
    """Order-insensitive representation used to compare tag sets."""
    return tuple(sorted(set(split_tags(tags))))
