# === event_inspect/yaml_loader.py ===

import bisect
import logging
import re
from typing import Dict, List, Optional, Set, Tuple, Union

import yaml

from event_inspect.errors import MalformedAsset
from event_inspect.models import Mapping, RawDocument, Scalar, ScalarKind, Sequence

logger = logging.getLogger(__name__)

_SCALAR_KINDS = {
    "tag:yaml.org,2002:str": ScalarKind.STR,
    "tag:yaml.org,2002:int": ScalarKind.INT,
    "tag:yaml.org,2002:float": ScalarKind.FLOAT,
    "tag:yaml.org,2002:bool": ScalarKind.BOOL,
    "tag:yaml.org,2002:null": ScalarKind.NULL,
}

# the characters PyYAML's reader counts as line breaks
_LINE_BREAK = re.compile("\r\n|[\r\n\x85\u2028\u2029]")
_BREAK_CHARS = "\r\n\x85\u2028\u2029"
_BOM = "\ufeff"

_LEADING_TABS = re.compile(r"\t+")
# %TAG only covers the first document of a stream, so "--- !u!N" headers get the
# verbatim tag. Unity marks prefab-instance documents "--- !u!1 &123 stripped",
# which is not YAML; the suffix is dropped.
_UNITY_HEADER = re.compile(r"(---[ \t]+)!u!(\d+)(.*?)([ \t]+stripped[ \t]*)?")
UNITY_TAG_PREFIX = "tag:unity3d.com,2011:"

# (normalized column, original column, normalized length, original length)
_Edit = Tuple[int, int, int, int]


class _SourceMap:
    """
    Normalization rewrites some lines before PyYAML sees them. This keeps the
    edits per line so that marks in the rewritten text can be reported as the
    column and character offset in the text as read.
    """

    def __init__(self, source: str, bom: bool):
        self.source = source
        self.bom = bom
        self.line_starts: List[int] = []
        self.normalized_starts: List[int] = []
        self.edits: Dict[int, List[_Edit]] = {}

    def locate(self, line: int, column: int) -> Tuple[int, Optional[int]]:
        """(line, column) in the normalized text -> (column, offset) in the original, 0-based."""
        original = column
        for norm_start, orig_start, norm_len, orig_len in self.edits.get(line, ()):
            if column < norm_start:
                break
            if column < norm_start + norm_len:
                original = orig_start + (column - norm_start) * orig_len // norm_len
                break
            original = column - (norm_start + norm_len) + (orig_start + orig_len)
        if not 0 <= line < len(self.line_starts):
            return original, None
        # PyYAML skips a leading BOM without counting it as a column
        shift = 1 if line == 0 and self.bom else 0
        return original, self.line_starts[line] + original + shift

    def locate_index(self, index: int) -> Tuple[int, int, Optional[int]]:
        """Character index in the normalized text -> (line, column, offset), 0-based."""
        line = max(bisect.bisect_right(self.normalized_starts, index) - 1, 0)
        column = index - self.normalized_starts[line] if self.normalized_starts else index
        if line == 0 and self.bom:
            column -= 1
        column, offset = self.locate(line, max(column, 0))
        return line, column, offset


def parse_asset_text(content: Union[bytes, str], source: str = "<string>") -> RawDocument:
    """
    Parse the structured-text content of one Unity asset into a RawDocument.

    - bytes are decoded as UTF-8 (a BOM is tolerated)
    - leading tabs are replaced with two spaces each (YAML forbids tab indentation)
    - Unity's ` stripped` document-header suffix is removed
    - `!u!N` document tags are expanded, so every document of the stream parses
    - a single document yields its root node; several documents yield a Sequence of roots

    Raises MalformedAsset with the line/column/offset where parsing broke,
    counted in the content as given (not in the normalized text).
    """
    text = _decode(content, source)
    text, origin = _normalize(text, source)

    try:
        roots = _compose_documents(text, origin)
    except yaml.MarkedYAMLError as exc:
        raise _from_marked_error(exc, origin) from exc
    except yaml.reader.ReaderError as exc:
        line, column, offset = origin.locate_index(exc.position)
        raise MalformedAsset(exc.reason, source=source, line=line + 1, column=column + 1, offset=offset) from exc
    except yaml.YAMLError as exc:
        raise MalformedAsset(str(exc), source=source) from exc

    if not roots:
        raise MalformedAsset("file contains no YAML document", source=source, line=1, column=1, offset=0)
    logger.debug(f"Parsed {len(roots)} document(s) from '{source}'")
    if len(roots) == 1:
        return roots[0]
    return Sequence(tuple(roots))


def _compose_documents(text: str, origin: _SourceMap) -> List[RawDocument]:
    loader = yaml.SafeLoader(text)
    roots: List[RawDocument] = []
    try:
        while loader.check_node():
            node = loader.get_node()
            if node is not None:
                roots.append(_to_raw(node, loader, origin, set()))
    finally:
        loader.dispose()
    return roots


def _decode(content: Union[bytes, str], source: str) -> str:
    if isinstance(content, str):
        return content
    try:
        # the BOM stays in the text: PyYAML skips it, and offsets count it
        return content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedAsset(f"content is not valid UTF-8 ({exc.reason})", source=source, offset=exc.start) from exc


def _split_lines(text: str) -> List[str]:
    lines = []
    start = 0
    for m in _LINE_BREAK.finditer(text):
        lines.append(text[start:m.end()])
        start = m.end()
    lines.append(text[start:])
    return lines


def _normalize(text: str, source: str) -> Tuple[str, _SourceMap]:
    origin = _SourceMap(source, bom=text.startswith(_BOM))
    out: List[str] = []
    read = written = 0
    tab_lines = header_lines = 0
    for number, line in enumerate(_split_lines(text)):
        origin.line_starts.append(read)
        origin.normalized_starts.append(written)
        read += len(line)

        body = line.rstrip(_BREAK_CHARS)
        ending = line[len(body):]
        edits: List[_Edit] = []

        tabs = _LEADING_TABS.match(body)
        header = _UNITY_HEADER.fullmatch(body)
        if tabs:
            n = tabs.end()
            edits.append((0, 0, 2 * n, n))
            body = "  " * n + body[n:]
            tab_lines += 1
        elif header:
            lead, class_id, rest, stripped = header.groups()
            tag = f"!<{UNITY_TAG_PREFIX}{class_id}>"
            edits.append((len(lead), len(lead), len(tag), len(class_id) + 3))
            body = lead + tag + rest
            if stripped:
                edits.append((len(body), header.start(4), 0, len(stripped)))
            header_lines += 1

        if edits:
            origin.edits[number] = edits
        out.append(body + ending)
        written += len(body) + len(ending)

    if tab_lines:
        logger.debug(f"Replaced indentation tabs with spaces on {tab_lines} line(s) in '{source}'")
    if header_lines:
        logger.debug(f"Expanded {header_lines} Unity document header(s) in '{source}'")
    return "".join(out), origin


def _to_raw(node: yaml.Node, loader: yaml.SafeLoader, origin: _SourceMap, active: Set[int]) -> RawDocument:
    if isinstance(node, yaml.ScalarNode):
        return _to_scalar(node, loader, origin)

    # `active` holds the collections on the current path; an alias back into one is a cycle
    if id(node) in active:
        raise _error_at("recursive alias cannot be represented", node.start_mark, origin)
    active.add(id(node))
    try:
        if isinstance(node, yaml.SequenceNode):
            return Sequence(tuple(_to_raw(child, loader, origin, active) for child in node.value))

        entries = []
        first_seen = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                raise _error_at("mapping keys must be scalars", key_node.start_mark, origin)
            key = key_node.value
            if key in first_seen:
                raise _error_at(
                    f"duplicate key `{key}` (first defined on line {first_seen[key]})",
                    key_node.start_mark,
                    origin,
                )
            first_seen[key] = key_node.start_mark.line + 1
            entries.append((key, _to_raw(value_node, loader, origin, active)))
        return Mapping(tuple(entries))
    finally:
        active.discard(id(node))


def _to_scalar(node: yaml.ScalarNode, loader: yaml.SafeLoader, origin: _SourceMap) -> Scalar:
    kind = _SCALAR_KINDS.get(node.tag)
    if kind is None:
        # timestamps, binary, custom tags: keep the source spelling
        return Scalar(ScalarKind.STR, node.value, node.value)
    try:
        if kind is ScalarKind.INT:
            value = loader.construct_yaml_int(node)
        elif kind is ScalarKind.FLOAT:
            value = loader.construct_yaml_float(node)
        elif kind is ScalarKind.BOOL:
            value = loader.construct_yaml_bool(node)
        elif kind is ScalarKind.NULL:
            value = None
        else:
            value = node.value
    except (ValueError, KeyError, IndexError) as exc:
        raise _error_at(f"`{node.value}` is not a valid {kind.value}", node.start_mark, origin) from exc
    return Scalar(kind, value, node.value)


def _error_at(detail: str, mark: Optional[yaml.Mark], origin: _SourceMap) -> MalformedAsset:
    if mark is None:
        return MalformedAsset(detail, source=origin.source)
    column, offset = origin.locate(mark.line, mark.column)
    return MalformedAsset(detail, source=origin.source, line=mark.line + 1, column=column + 1, offset=offset)


def _from_marked_error(exc: yaml.MarkedYAMLError, origin: _SourceMap) -> MalformedAsset:
    detail = "; ".join(part for part in (exc.context, exc.problem) if part) or str(exc)
    return _error_at(detail, exc.problem_mark or exc.context_mark, origin)
