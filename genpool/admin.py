"""
Administrative client for the worker pool lifecycle (start, stop, status).

Kept apart from the job path: it talks to the GraphQL API, not to the
endpoint's /run surface.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .config import AdminConfig, EndpointConfig
from .errors import AdminError, MalformedResponse, TransportError
from .transport import classify_response

logger = logging.getLogger(__name__)

START_MUTATION = """
mutation StartEndpoint($id: String!) {
  startServerlessFunction(input: {id: $id}) { id status }
}
"""

STOP_MUTATION = """
mutation StopEndpoint($id: String!) {
  stopServerlessFunction(input: {id: $id}) { id status }
}
"""

STATUS_QUERY = """
query EndpointStatus($ids: [String!]) {
  myself {
    serverlessFunctions(ids: $ids) { id name status workersMin workersMax idleTimeout }
  }
}
"""


class EndpointAdminClient:
    """Starts, stops and inspects a serverless endpoint."""

    def __init__(self, endpoint: EndpointConfig, admin: Optional[AdminConfig] = None,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.admin = admin or AdminConfig()
        self.session = session or requests.Session()
        self._api_key = endpoint.resolve_api_key()

    @property
    def endpoint_id(self) -> str:
        return self.endpoint.endpoint_id

    def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run one GraphQL operation and return its data section."""
        try:
            response = self.session.post(
                self.admin.graphql_url,
                json={"query": query, "variables": variables},
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
                timeout=self.admin.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GraphQL request failed: {e}", endpoint_id=self.endpoint_id) from e

        classify_response(response, endpoint_id=self.endpoint_id)
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse("GraphQL API returned a non-JSON body", endpoint_id=self.endpoint_id) from e
        if not isinstance(body, dict):
            raise MalformedResponse("GraphQL API returned a non-object body", endpoint_id=self.endpoint_id)

        if body.get("errors"):
            raise AdminError(
                f"GraphQL API returned errors: {body['errors']}",
                endpoint_id=self.endpoint_id,
                details={"errors": body["errors"]},
            )
        data = body.get("data")
        if not isinstance(data, dict):
            raise MalformedResponse("GraphQL response has no data", endpoint_id=self.endpoint_id)
        return data

    def start(self) -> Dict[str, Any]:
        """Start the endpoint and return its id and status."""
        logger.info(f"Starting endpoint {self.endpoint_id}")
        data = self._execute(START_MUTATION, {"id": self.endpoint_id})
        return data.get("startServerlessFunction") or {}

    def stop(self) -> Dict[str, Any]:
        """Stop the endpoint and return its id and status."""
        logger.info(f"Stopping endpoint {self.endpoint_id}")
        data = self._execute(STOP_MUTATION, {"id": self.endpoint_id})
        return data.get("stopServerlessFunction") or {}

    def status(self) -> Dict[str, Any]:
        """Return the endpoint settings listed for this account."""
        data = self._execute(STATUS_QUERY, {"ids": [self.endpoint_id]})
        functions = ((data.get("myself") or {}).get("serverlessFunctions")) or []
        if not functions:
            raise AdminError(f"Endpoint {self.endpoint_id} not listed for this account", endpoint_id=self.endpoint_id)
        return functions[0]
