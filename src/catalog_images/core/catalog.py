"""MongoDB-backed catalog of records."""

from typing import Any, Dict, Iterator, Optional

import bson
from bson.codec_options import CodecOptions
from bson.errors import BSONError
from bson.raw_bson import RawBSONDocument
from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .exceptions import CatalogError, CatalogItemError
from .models import Record
from .protocols import CatalogEntry


class MongoCatalogSource:
    """
    Read-only view of a collection as a stream of records.

    Only the identifier and image fields are projected. Documents arrive as
    raw BSON and are decoded one at a time, so a document that cannot be
    decoded or turned into a `Record` is yielded as a `CatalogItemError`
    value; any driver error (lost connection, server selection timeout,
    cursor failure) raises `CatalogError`.
    """

    def __init__(
        self,
        collection: Collection,
        identifier_field: str = "podlistUrl",
        image_field: str = "image",
        client: Optional[MongoClient] = None,
    ):
        self._collection = collection
        self._identifier_field = identifier_field
        self._image_field = image_field
        self._client = client

    def iter_records(self) -> Iterator[CatalogEntry]:
        projection = {self._identifier_field: 1, self._image_field: 1}
        collection = self._collection.with_options(
            codec_options=CodecOptions(document_class=RawBSONDocument)
        )
        try:
            with collection.find({}, projection=projection) as cursor:
                for document in cursor:
                    yield self.to_record(document)
        except (PyMongoError, BSONError) as e:
            raise CatalogError(f"Catalog query failed: {e}") from e

    def to_record(self, document: Dict[str, Any]) -> CatalogEntry:
        """Convert one projected document into a record or an item error."""
        if isinstance(document, RawBSONDocument):
            try:
                document = bson.decode(document.raw)
            except BSONError as e:
                return CatalogItemError(f"Undecodable catalog document: {e}")

        try:
            return Record(
                identifier=document.get(self._identifier_field),
                image_locator=document.get(self._image_field),
            )
        except ValidationError as e:
            source_fields = {
                "identifier": self._identifier_field,
                "image_locator": self._image_field,
            }
            fields = ", ".join(
                source_fields.get(str(error["loc"][0]), str(error["loc"][0]))
                for error in e.errors()
            )
            return CatalogItemError(
                f"Invalid catalog document: bad or missing field(s) {fields}",
                document_id=document.get("_id"),
                document=document,
            )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "MongoCatalogSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
