"""
SimpleDB transport.
Wraps the boto3 `sdb` client; retry policy lives in the botocore config.
"""
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import LoaderConfig
from .logger import get_logger
from .metrics import MetricsCollector
from .records import Record


@dataclass
class WriteFailure:
    """Structured detail of a rejected or errored remote call."""
    domain_name: str
    item_count: int
    message: str
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    error_type: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_exception(cls, domain_name: str, item_count: int, error: BaseException) -> "WriteFailure":
        """Extract status, error code/type and request id from a transport exception."""
        if isinstance(error, ClientError):
            response = error.response or {}
            err = response.get("Error", {})
            metadata = response.get("ResponseMetadata", {})
            return cls(
                domain_name=domain_name,
                item_count=item_count,
                message=err.get("Message") or str(error),
                status_code=metadata.get("HTTPStatusCode"),
                error_code=err.get("Code"),
                error_type=err.get("Type"),
                request_id=metadata.get("RequestId"),
            )

        return cls(
            domain_name=domain_name,
            item_count=item_count,
            message=str(error),
            error_type=type(error).__name__,
        )

    def details(self) -> Dict[str, Any]:
        """Key/value detail for the structured logger."""
        return {
            "domain": self.domain_name,
            "items": self.item_count,
            "status": self.status_code,
            "code": self.error_code,
            "type": self.error_type,
            "request_id": self.request_id,
            "error": self.message,
        }


class SimpleDBStore:
    """
    Remote operations against SimpleDB.

    Every method is safe to call from worker threads: botocore clients are
    thread-safe and the connection pool is sized to the worker count.
    """

    def __init__(
        self,
        config: LoaderConfig,
        metrics: Optional[MetricsCollector] = None,
        client: Any = None,
    ):
        self.config = config
        self.metrics = metrics or MetricsCollector()
        self.logger = get_logger()
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self):
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    def _create_client(self):
        session = boto3.Session(
            aws_access_key_id=self.config.access_key_id,
            aws_secret_access_key=self.config.secret_access_key,
            region_name=self.config.region,
        )
        return session.client(
            "sdb",
            region_name=self.config.region,
            endpoint_url=self.config.endpoint_url,
            config=BotoConfig(
                max_pool_connections=self.config.thread_count,
                connect_timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout,
                retries={"total_max_attempts": self.config.max_attempts, "mode": "standard"},
            ),
        )

    def put_batch(self, domain_name: str, records: List[Record]) -> int:
        """
        Write records to a domain in one BatchPutAttributes call.

        Returns:
            Number of items written

        Raises:
            The transport exception if the call is rejected or fails
        """
        items = [record.to_item(replace=self.config.replace_attributes) for record in records]
        with self.metrics.timed("batch_put"):
            self.client.batch_put_attributes(DomainName=domain_name, Items=items)
        return len(items)

    def create_domain(self, domain_name: str):
        self.client.create_domain(DomainName=domain_name)

    def delete_domain(self, domain_name: str):
        self.client.delete_domain(DomainName=domain_name)

    def list_domains(self) -> List[str]:
        names: List[str] = []
        paginator = self.client.get_paginator("list_domains")
        for page in paginator.paginate():
            names.extend(page.get("DomainNames", []))
        return names

    def domain_metadata(self, domain_name: str) -> dict:
        response = self.client.domain_metadata(DomainName=domain_name)
        return {
            "items": response.get("ItemCount", 0),
            "attribute_names": response.get("AttributeNameCount", 0),
            "attribute_values": response.get("AttributeValueCount", 0),
            "size_bytes": response.get("ItemNamesSizeBytes", 0)
            + response.get("AttributeNamesSizeBytes", 0)
            + response.get("AttributeValuesSizeBytes", 0),
        }

    def test_connection(self) -> bool:
        """Check that the credentials and endpoint are usable."""
        try:
            self.client.list_domains(MaxNumberOfDomains=1)
            self.logger.info("Connected to SimpleDB", region=self.config.region)
            return True
        except Exception as e:
            failure = WriteFailure.from_exception("", 0, e)
            self.logger.error(
                "SimpleDB connection failed",
                status=failure.status_code,
                code=failure.error_code,
                error=failure.message
            )
            return False
