"""Binary encoding of embedding collections.

Collections are stored as protobuf messages following
``proto/embeddings.proto``:

    EmbeddingCollection: 1 embeddings (repeated Embedding), 2 model_name,
                         3 model_version, 4 dimension (int32)
    Embedding:           1 values (packed float), 2 text, 3 timestamp (int64)

The message classes are built at import time from a descriptor matching that
file, in a private descriptor pool. Serialization is deterministic and
unknown fields are ignored on decode.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import BinaryIO

import numpy as np
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

from embedcache.errors import DimensionInconsistency, MalformedData
from embedcache.models import EmbeddingCollection, EmbeddingRecord

logger = logging.getLogger(__name__)

_Field = descriptor_pb2.FieldDescriptorProto


def _build_message_classes():
    """Register embeddings.proto in a private pool and return its message classes."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="embedcache/embeddings.proto",
        package="embeddings",
        syntax="proto3",
    )

    embedding = file_proto.message_type.add(name="Embedding")
    values = embedding.field.add(
        name="values", number=1, type=_Field.TYPE_FLOAT, label=_Field.LABEL_REPEATED,
    )
    values.options.packed = True
    embedding.field.add(name="text", number=2, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)
    embedding.field.add(name="timestamp", number=3, type=_Field.TYPE_INT64, label=_Field.LABEL_OPTIONAL)

    collection = file_proto.message_type.add(name="EmbeddingCollection")
    collection.field.add(
        name="embeddings", number=1, type=_Field.TYPE_MESSAGE,
        label=_Field.LABEL_REPEATED, type_name=".embeddings.Embedding",
    )
    collection.field.add(name="model_name", number=2, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)
    collection.field.add(name="model_version", number=3, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)
    collection.field.add(name="dimension", number=4, type=_Field.TYPE_INT32, label=_Field.LABEL_OPTIONAL)

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return (
        message_factory.GetMessageClass(pool.FindMessageTypeByName("embeddings.Embedding")),
        message_factory.GetMessageClass(pool.FindMessageTypeByName("embeddings.EmbeddingCollection")),
    )


EmbeddingProto, EmbeddingCollectionProto = _build_message_classes()


def _check_dimensions(collection: EmbeddingCollection) -> None:
    for i, record in enumerate(collection.records):
        if record.values.shape[0] != collection.dimension:
            label = f" ({record.text[:60]!r})" if record.text else ""
            raise DimensionInconsistency(
                f"Record {i}{label} has {record.values.shape[0]} values, "
                f"collection dimension is {collection.dimension}"
            )


def to_proto(collection: EmbeddingCollection):
    """Convert a collection to its protobuf message."""
    _check_dimensions(collection)
    message = EmbeddingCollectionProto(
        model_name=collection.model_name,
        model_version=collection.model_version,
        dimension=collection.dimension,
    )
    for record in collection.records:
        message.embeddings.add(
            values=record.values.tolist(),
            text=record.text,
            timestamp=record.timestamp,
        )
    return message


def from_proto(message) -> EmbeddingCollection:
    """Convert a protobuf message to a collection, validating record dimensions."""
    collection = EmbeddingCollection(
        model_name=message.model_name,
        model_version=message.model_version,
        dimension=message.dimension,
        records=[
            EmbeddingRecord(
                values=np.asarray(list(emb.values), dtype=np.float32),
                text=emb.text,
                timestamp=emb.timestamp,
            )
            for emb in message.embeddings
        ],
    )
    _check_dimensions(collection)
    return collection


def encode_collection(collection: EmbeddingCollection) -> bytes:
    """Serialize a collection to protobuf bytes."""
    return to_proto(collection).SerializeToString(deterministic=True)


def decode_collection(data: bytes) -> EmbeddingCollection:
    """Parse protobuf bytes into a collection."""
    message = EmbeddingCollectionProto()
    try:
        message.ParseFromString(bytes(data))
    except (DecodeError, UnicodeDecodeError) as exc:
        raise MalformedData(f"Cannot parse embedding collection: {exc}") from exc
    return from_proto(message)


# --- Collections from vectors, and file I/O ---


def build_collection(
    vectors,
    texts: list[str] | None,
    model_name: str,
    model_version: str,
    dimension: int,
    timestamp: int | None = None,
) -> EmbeddingCollection:
    """Pair vectors with optional texts under one model identity.

    Texts beyond the end of ``texts`` (or all of them when ``texts`` is None)
    are stored as empty strings. Every record gets the same timestamp.
    """
    if timestamp is None:
        timestamp = int(time.time())
    records = []
    for i, vec in enumerate(vectors):
        text = texts[i] if texts is not None and i < len(texts) else ""
        records.append(EmbeddingRecord(values=vec, text=text, timestamp=timestamp))
    collection = EmbeddingCollection(
        model_name=model_name,
        model_version=model_version,
        dimension=dimension,
        records=records,
    )
    _check_dimensions(collection)
    return collection


def write_collection(collection: EmbeddingCollection, sink: str | Path | BinaryIO) -> int:
    """Write a collection to a path or binary file object. Returns bytes written."""
    data = encode_collection(collection)
    if hasattr(sink, "write"):
        sink.write(data)
    else:
        path = Path(sink)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(
            "Saved %d embeddings (%s, dim=%d) to %s",
            len(collection), collection.model_name, collection.dimension, path,
        )
    return len(data)


def read_collection(source: str | Path | BinaryIO | bytes) -> EmbeddingCollection:
    """Read a collection from a path, binary file object or raw bytes."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    elif hasattr(source, "read"):
        data = source.read()
    else:
        data = Path(source).read_bytes()
    return decode_collection(data)
