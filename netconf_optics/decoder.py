"""Schema-free XML to structured value conversion.

The reply XML is turned into plain Python values without any knowledge of the
YANG model behind it:

- an element with only text becomes a string, ``None`` when empty
- an element with children becomes a dict keyed by child tag
- repeated sibling tags become a list, in document order
- attributes become ``@name`` keys, and text next to attributes or children
  is kept under ``#text``
- CDATA content is kept under ``#cdata``

Leaves are never coerced: ``<a>5</a>`` decodes to ``{"a": "5"}``.

Known limitation: an element with children keeps only its first text run, and
an element with several CDATA sections keeps only the last one.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union
from xml.parsers import expat

from .errors import DecodeError

logger = logging.getLogger(__name__)

Value = Union[None, str, List["Value"], Dict[str, "Value"]]

TEXT_KEY = "#text"
CDATA_KEY = "#cdata"
ATTRIBUTE_PREFIX = "@"

_START = "start"
_END = "end"
_TEXT = "text"
_CDATA = "cdata"


def merge(existing: Value, value: Value) -> List[Value]:
    """Combine a repeated sibling with what is already stored under its tag.

    A list is extended, anything else is promoted to a two-element list. Neither
    argument is modified.
    """
    if isinstance(existing, list):
        return [*existing, value]
    return [existing, value]


def _with_attributes(child: Value, attrs: Dict[str, str]) -> Value:
    if not attrs:
        return child

    attributes: Dict[str, Value] = {
        f"{ATTRIBUTE_PREFIX}{name}": value for name, value in attrs.items()
    }
    if isinstance(child, dict):
        return {**child, **attributes}
    if child is not None:
        attributes[TEXT_KEY] = child
    return attributes


class _EventCollector:
    """Flattens expat callbacks into start/text/cdata/end events.

    Adjacent character data is coalesced into a single run, trimmed, and
    dropped when only whitespace remains.
    """

    def __init__(self):
        self.events: List[tuple] = []
        self._text: List[str] = []
        self._cdata: Optional[List[str]] = None

    def attach(self, parser) -> None:
        parser.StartElementHandler = self.start
        parser.EndElementHandler = self.end
        parser.CharacterDataHandler = self.characters
        parser.StartCdataSectionHandler = self.start_cdata
        parser.EndCdataSectionHandler = self.end_cdata
        parser.CommentHandler = lambda data: self._flush()
        parser.ProcessingInstructionHandler = lambda target, data: self._flush()

    def _flush(self) -> None:
        if not self._text:
            return
        run = "".join(self._text).strip()
        self._text = []
        if run:
            self.events.append((_TEXT, run))

    def start(self, name: str, attrs: Dict[str, str]) -> None:
        self._flush()
        self.events.append((_START, name, attrs))

    def end(self, name: str) -> None:
        self._flush()
        self.events.append((_END, name))

    def characters(self, data: str) -> None:
        if self._cdata is not None:
            self._cdata.append(data)
        else:
            self._text.append(data)

    def start_cdata(self) -> None:
        self._flush()
        self._cdata = []

    def end_cdata(self) -> None:
        self.events.append((_CDATA, "".join(self._cdata or [])))
        self._cdata = None


def _finish(node: Dict[str, Value], texts: List[str]) -> Value:
    if node:
        if texts:
            node[TEXT_KEY] = texts[0]
        return node

    if not texts:
        return None
    if len(texts) == 1:
        return texts[0]
    return texts


def _build(events: Iterable[tuple]) -> Value:
    """Fold the event stream into a value, one frame per open element.

    Each frame holds the element's name, its attributes, the children decoded
    so far and its text runs. The bottom frame collects the root element.
    """
    stack: List[Tuple[str, Dict[str, str], Dict[str, Value], List[str]]] = [("", {}, {}, [])]

    for event in events:
        kind = event[0]
        if kind == _START:
            _, name, attrs = event
            stack.append((name, attrs, {}, []))
        elif kind == _TEXT:
            stack[-1][3].append(event[1])
        elif kind == _CDATA:
            stack[-1][2][CDATA_KEY] = event[1]
        else:
            name, attrs, node, texts = stack.pop()
            child = _with_attributes(_finish(node, texts), attrs)
            parent = stack[-1][2]
            parent[name] = merge(parent[name], child) if name in parent else child

    _, _, node, texts = stack[0]
    return _finish(node, texts)


def decode(markup: Union[str, bytes]) -> Value:
    """Decode an XML document into nested dicts, lists and strings.

    The result is a dict keyed by the root tag. Tag and attribute names are
    kept exactly as written, namespace prefixes and ``xmlns`` attributes
    included.

    Raises:
        DecodeError: the markup is not well-formed.
    """
    collector = _EventCollector()
    parser = expat.ParserCreate()
    collector.attach(parser)

    try:
        parser.Parse(markup, True)
    except expat.ExpatError as e:
        raise DecodeError(f"Malformed XML: {e}") from e

    logger.debug(f"Decoding {len(collector.events)} XML events")
    return _build(collector.events)
