# Overview: Snapshot codec; converts collections of documents to a portable JSON-safe form and back.

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Mapping

from ..errors import MalformedSnapshot
from ..time_utils import parse_iso_datetime, to_iso_z
from .store import Document

"""
Snapshot format

    {
      "<collection>": [
        {"_id": "<document id>", "<field>": <value>, ...},
        ...
      ],
      ...
    }

- Native timestamps (datetime values, at any depth) are written as
  {"_serverTimestamp": "<ISO-8601, UTC, Z>"}.
- Only an object whose sole key is "_serverTimestamp" is a timestamp. A
  string that merely contains that text is an ordinary string.
- "_id" carries document identity and is never stored as a field.
- A tagged value that is not valid ISO-8601 is a hard failure.
"""

TIMESTAMP_TAG = "_serverTimestamp"
ID_FIELD = "_id"


def _is_timestamp_tag(value: Any) -> bool:
    return isinstance(value, dict) and len(value) == 1 and TIMESTAMP_TAG in value


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {TIMESTAMP_TAG: to_iso_z(value)}
    if isinstance(value, Mapping):
        return {str(k): _encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _decode_value(value: Any, path: str) -> Any:
    if _is_timestamp_tag(value):
        raw = value[TIMESTAMP_TAG]
        if not isinstance(raw, str):
            raise MalformedSnapshot(f"{path}: timestamp must be an ISO-8601 string")
        try:
            parsed = parse_iso_datetime(raw)
        except ValueError as exc:
            raise MalformedSnapshot(f"{path}: {raw!r} is not ISO-8601") from exc
        if parsed is None:
            raise MalformedSnapshot(f"{path}: empty timestamp")
        return parsed
    if isinstance(value, dict):
        return {k: _decode_value(v, f"{path}.{k}") for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_value(v, f"{path}[{i}]") for i, v in enumerate(value)]
    return value


def encode(collections: Mapping[str, Iterable[Document]]) -> dict[str, list[dict]]:
    snapshot = {}
    for name, documents in collections.items():
        encoded = []
        for document in documents:
            if ID_FIELD in document.fields:
                raise ValueError(f"{name}/{document.id}: field name {ID_FIELD!r} is reserved")
            body = {ID_FIELD: document.id}
            body.update({key: _encode_value(value) for key, value in document.fields.items()})
            encoded.append(body)
        snapshot[name] = encoded
    return snapshot


def decode(snapshot: Any) -> dict[str, list[Document]]:
    """
    Inverse of encode. Validates the whole snapshot; the first bad document
    raises MalformedSnapshot and nothing is returned.
    """
    if not isinstance(snapshot, Mapping):
        raise MalformedSnapshot("snapshot must be an object of collections")

    collections = {}
    for name, documents in snapshot.items():
        if not isinstance(documents, list):
            raise MalformedSnapshot(f"{name}: collection must be a list of documents")
        decoded = []
        for index, body in enumerate(documents):
            path = f"{name}[{index}]"
            if not isinstance(body, Mapping):
                raise MalformedSnapshot(f"{path}: document must be an object")
            doc_id = body.get(ID_FIELD)
            if isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)) or doc_id == "":
                raise MalformedSnapshot(f"{path}: missing {ID_FIELD}")
            fields = {
                key: _decode_value(value, f"{path}.{key}")
                for key, value in body.items()
                if key != ID_FIELD
            }
            decoded.append(Document(id=str(doc_id), fields=fields))
        collections[name] = decoded
    return collections


def dumps(snapshot: Mapping[str, Any]) -> bytes:
    return json.dumps(snapshot, indent=2, ensure_ascii=False, sort_keys=True).encode("utf-8")


def loads(data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedSnapshot(f"snapshot is not valid JSON: {exc}") from exc
