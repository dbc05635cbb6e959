"""Turn raw Algolia build-log records into LogEntry values (operation kind + object IDs)."""
import json
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional
from urllib.parse import unquote, urlsplit

ADD = "add"
UPDATE = "update"
DELETE = "delete"
CLEAR = "clear"
BATCH = "batch"
OTHER = "other"

# batch "action" values -> operation kind
BATCH_ACTIONS = {
    "addObject": ADD,
    "updateObject": UPDATE,
    "partialUpdateObject": UPDATE,
    "partialUpdateObjectNoCreate": UPDATE,
    "deleteObject": DELETE,
    "delete": CLEAR,
    "clear": CLEAR,
}


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    kind: str
    object_ids: tuple = ()
    # batch only: ((kind, (object_id, ...)), ...) in first-seen order
    actions: tuple = ()
    method: str = ""
    url: str = ""
    raw: dict = field(default_factory=dict, compare=False, hash=False)


def _load_json(value: Any) -> Any:
    """query_body / answer arrive as JSON strings, sometimes truncated by Algolia."""
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return json.loads(value)
    except ValueError:
        return None


def _path_after_index(url: str) -> Optional[List[str]]:
    """Return [index, *rest] from /1/indexes/<index>/<rest...>, or None for other endpoints."""
    parts = [unquote(p) for p in urlsplit(url or "").path.split("/") if p]
    if len(parts) < 3 or parts[0] != "1" or parts[1] != "indexes":
        return None
    return parts[2:]


def _batch_actions(body: Any, answer: Any, index_name: Optional[str]) -> Optional[tuple]:
    """None when the body could not be read (Algolia truncates long bodies)."""
    requests_ = body.get("requests") if isinstance(body, dict) else None
    answer_ids = answer.get("objectIDs") if isinstance(answer, dict) else None
    if not isinstance(answer_ids, list):
        answer_ids = []
    if not isinstance(requests_, list):
        return None

    grouped: dict = {}
    for pos, req in enumerate(requests_):
        if not isinstance(req, dict):
            continue
        # multi-index batches name the target index on each request
        target = req.get("indexName")
        if index_name and target and target != index_name:
            continue
        kind = BATCH_ACTIONS.get(req.get("action", ""), OTHER)
        req_body = req.get("body") if isinstance(req.get("body"), dict) else {}
        object_id = req_body.get("objectID")
        if object_id is None and pos < len(answer_ids):
            object_id = answer_ids[pos]
        ids = grouped.setdefault(kind, [])
        if object_id is not None:
            ids.append(str(object_id))
    return tuple((kind, tuple(ids)) for kind, ids in grouped.items())


def parse_log(log: dict, index_name: Optional[str] = None) -> LogEntry:
    """Classify one Algolia log record by its HTTP method and URL."""
    method = str(log.get("method") or "").upper()
    url = str(log.get("url") or "")
    timestamp = str(log.get("timestamp") or "")
    body = _load_json(log.get("query_body"))
    answer = _load_json(log.get("answer"))

    def entry(kind: str, ids: Iterable = (), actions: tuple = ()) -> LogEntry:
        return LogEntry(
            timestamp=timestamp,
            kind=kind,
            object_ids=tuple(str(i) for i in ids),
            actions=actions,
            method=method,
            url=url,
            raw=log,
        )

    path = _path_after_index(url)
    if path is None:
        return entry(OTHER)
    rest = path[1:]

    if rest == ["batch"] and method == "POST":
        actions = _batch_actions(body, answer, index_name)
        if actions is None:
            ids = answer.get("objectIDs") if isinstance(answer, dict) else None
            return entry(BATCH, ids if isinstance(ids, list) else [])
        ids = [oid for _, kind_ids in actions for oid in kind_ids]
        return entry(BATCH, ids, actions)
    if not rest:
        if method == "POST":
            object_id = answer.get("objectID") if isinstance(answer, dict) else None
            return entry(ADD, [object_id] if object_id is not None else [])
        if method == "DELETE":
            return entry(CLEAR)
        return entry(OTHER)
    if rest in (["clear"], ["deleteByQuery"]) and method == "POST":
        return entry(CLEAR if rest == ["clear"] else DELETE)
    if len(rest) == 1 and rest[0] not in ("settings", "operation", "synonyms", "rules", "task"):
        if method == "PUT":
            return entry(UPDATE, rest)
        if method == "DELETE":
            return entry(DELETE, rest)
    if len(rest) == 2 and rest[1] == "partial" and method == "POST":
        return entry(UPDATE, rest[:1])
    return entry(OTHER)


def parse_logs(logs: Iterable[dict], index_name: Optional[str] = None) -> List[LogEntry]:
    return [parse_log(log, index_name) for log in logs]


def newer_than(entries: Iterable[LogEntry], cursor: Optional[str]) -> List[LogEntry]:
    """Entries strictly newer than cursor, oldest first.

    Algolia timestamps are ISO 8601 UTC strings of one fixed format, so they order lexically."""
    fresh = [e for e in entries if e.timestamp and (cursor is None or e.timestamp > cursor)]
    return sorted(fresh, key=lambda e: e.timestamp)


def newest_timestamp(entries: Iterable[LogEntry], cursor: Optional[str] = None) -> Optional[str]:
    for e in entries:
        if e.timestamp and (cursor is None or e.timestamp > cursor):
            cursor = e.timestamp
    return cursor
