"""Copies and moves objects between GCS paths with the storage client."""

import dataclasses
import logging
import posixpath
from typing import List

from google.cloud import storage

from gcsflow.exceptions import (
    DestinationExistsException,
    SourceIsDestinationException,
    SourceNotFoundException,
)
from gcsflow.gcs.path import GCSPath


@dataclasses.dataclass(frozen=True)
class TransferPair:
    source: GCSPath
    destination: GCSPath


@dataclasses.dataclass
class TransferResult:
    pairs: List[TransferPair]
    moved: bool = False

    @property
    def count(self) -> int:
        return len(self.pairs)


def _list_directory(
    client: storage.Client, source: GCSPath, recursive: bool
) -> List[storage.Blob]:
    prefix = "" if source.is_bucket else source.name.rstrip("/") + "/"
    # Without recursion only the objects directly under the prefix are listed.
    delimiter = None if recursive else "/"
    blobs = client.list_blobs(source.bucket, prefix=prefix or None, delimiter=delimiter)
    # Zero-byte placeholders for the directory itself are skipped.
    return [blob for blob in blobs if blob.name != prefix]


def plan_transfer(
    client: storage.Client,
    source: GCSPath,
    destination: GCSPath,
    recursive: bool,
) -> List[TransferPair]:
    """Maps every source object to the object it will be written to.

    A single object keeps its base name when the destination is a bucket or
    ends with '/', otherwise it takes the destination name. Objects under a
    directory keep their path relative to the source directory.
    """
    if not source.is_directory:
        blob = client.bucket(source.bucket).get_blob(source.name)
        if blob is not None:
            if destination.is_directory:
                target = destination.child(posixpath.basename(source.name))
            else:
                target = destination
            return [TransferPair(source=source, destination=target)]

    blobs = _list_directory(client, source, recursive)
    if not blobs:
        raise SourceNotFoundException(source.uri)
    prefix = "" if source.is_bucket else source.name.rstrip("/") + "/"
    return [
        TransferPair(
            source=GCSPath(bucket=source.bucket, name=blob.name),
            destination=destination.child(blob.name[len(prefix) :]),
        )
        for blob in blobs
    ]


def transfer(
    client: storage.Client,
    source: GCSPath,
    destination: GCSPath,
    *,
    recursive: bool,
    overwrite: bool,
    delete_source: bool = False,
) -> TransferResult:
    pairs = plan_transfer(client, source, destination, recursive)
    # An object is never copied onto itself.
    onto_source = [
        pair.source.uri for pair in pairs if pair.source == pair.destination
    ]
    if onto_source:
        raise SourceIsDestinationException(onto_source)
    destination_bucket = client.bucket(destination.bucket)
    if not overwrite:
        existing = [
            pair.destination.uri
            for pair in pairs
            if destination_bucket.blob(pair.destination.name).exists()
        ]
        if existing:
            raise DestinationExistsException(existing)

    source_bucket = client.bucket(source.bucket)
    for pair in pairs:
        source_blob = source_bucket.blob(pair.source.name)
        source_bucket.copy_blob(
            source_blob, destination_bucket, new_name=pair.destination.name
        )
        if delete_source:
            source_blob.delete()
        logging.debug(
            f"{'Moved' if delete_source else 'Copied'} {pair.source.uri} to "
            f"{pair.destination.uri}"
        )
    logging.info(
        f"{'Moved' if delete_source else 'Copied'} {len(pairs)} object(s) from "
        f"{source.uri} to {destination.uri}"
    )
    return TransferResult(pairs=pairs, moved=delete_source)
