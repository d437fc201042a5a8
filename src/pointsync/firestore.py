"""Firestore REST API client for the per-user transaction collection."""

from datetime import date
from decimal import Decimal
from typing import Any

import requests
from loguru import logger

from pointsync.errors import RemoteError
from pointsync.models import Transaction, parse_timestamp

# Fields read back from a document; anything else another client stored is ignored
TRANSACTION_FIELDS = ("card", "amount", "category", "date", "description", "points")


def encode_fields(tx: Transaction) -> dict[str, Any]:
    """Convert a Transaction to Firestore document fields.

    The id is carried by the document name and the creation timestamp is
    assigned by the server, so neither is stored as a field.
    """
    return {
        "card": {"stringValue": tx.card},
        "amount": {"doubleValue": float(tx.amount)},
        "category": {"stringValue": tx.category},
        "date": {"stringValue": tx.date.isoformat()},
        "description": {"stringValue": tx.description},
        "points": {"integerValue": str(tx.points)},
    }


def _field_value(value: dict[str, Any]) -> Any:
    """Unwrap a typed Firestore value."""
    if "stringValue" in value:
        return value["stringValue"]
    if "doubleValue" in value:
        return Decimal(str(value["doubleValue"]))
    if "integerValue" in value:
        return int(value["integerValue"])
    if "nullValue" in value:
        return None
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_document(document: dict[str, Any]) -> Transaction:
    """Convert a Firestore document to a Transaction.

    Raises:
        RemoteError: If the document is malformed
    """
    try:
        raw = document.get("fields", {})
        fields = {name: _field_value(raw[name]) for name in TRANSACTION_FIELDS if name in raw}
        amount = fields["amount"]
        return Transaction(
            id=document["name"].rsplit("/", 1)[-1],
            card=fields["card"],
            amount=amount if isinstance(amount, Decimal) else Decimal(amount),
            category=fields["category"],
            date=date.fromisoformat(fields["date"]),
            description=fields.get("description") or "",
            points=int(fields.get("points") or 0),
            created_at=parse_timestamp(document["createTime"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise RemoteError(f"Malformed document {document.get('name')}: {e}") from e


class FirestoreClient:
    """Client for the Firestore REST API."""

    BASE_URL = "https://firestore.googleapis.com/v1"
    PAGE_SIZE = 300

    def __init__(self, project_id: str, api_key: str) -> None:
        """Initialize client for a Firebase project."""
        self.project_id = project_id
        self.api_key = api_key
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    @property
    def documents_url(self) -> str:
        """Root URL of the project's default database documents."""
        return f"{self.BASE_URL}/projects/{self.project_id}/databases/(default)/documents"

    @staticmethod
    def collection_path(uid: str) -> str:
        """Path of the transaction collection owned by ``uid``."""
        return f"users/{uid}/transactions"

    def _request(
        self,
        method: str,
        path: str,
        id_token: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an API request, raising RemoteError on failure."""
        url = f"{self.documents_url}/{path}"
        query = {"key": self.api_key, **(params or {})}
        headers = {"Authorization": f"Bearer {id_token}"}

        try:
            response = self._session.request(
                method, url, params=query, json=json, headers=headers
            )
            response.raise_for_status()
            return response.json() if response.content else {}  # type: ignore[no-any-return]
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemoteError(f"{method} {path} failed: {e}", status=status) from e
        except requests.RequestException as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON: {e}") from e

    def list_transactions(self, uid: str, id_token: str) -> list[Transaction]:
        """Fetch every transaction owned by ``uid``, newest first."""
        transactions: list[Transaction] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {"pageSize": self.PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token

            result = self._request("GET", self.collection_path(uid), id_token, params=params)
            for doc in result.get("documents", []):
                try:
                    transactions.append(decode_document(doc))
                except RemoteError as e:
                    logger.warning("Skipping unreadable document", error=str(e))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        transactions.sort(key=lambda tx: tx.created_at, reverse=True)  # type: ignore[arg-type,return-value]
        return transactions

    def create_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        """Create a document for ``tx`` using its id as the document id.

        Returns:
            The stored transaction with the server's creation timestamp
        """
        result = self._request(
            "POST",
            self.collection_path(uid),
            id_token,
            params={"documentId": tx.id},
            json={"fields": encode_fields(tx)},
        )
        return decode_document(result)

    def upsert_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        """Write ``tx`` under its id, creating or overwriting the document.

        Only the transaction fields are replaced; other fields on an
        existing document are left alone.

        Returns:
            The stored transaction with the document's creation timestamp
        """
        result = self._request(
            "PATCH",
            f"{self.collection_path(uid)}/{tx.id}",
            id_token,
            params={"updateMask.fieldPaths": list(TRANSACTION_FIELDS)},
            json={"fields": encode_fields(tx)},
        )
        return decode_document(result)

    def delete_transaction(self, uid: str, id_token: str, transaction_id: str) -> None:
        """Delete one transaction document."""
        self._request("DELETE", f"{self.collection_path(uid)}/{transaction_id}", id_token)
