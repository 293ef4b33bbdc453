"""Pronoun directory sources.

A source answers one question: given a person id, what raw pronoun code or
label does it have on file? Sources raise ``SourceError`` when they cannot
answer; the directory decides what to do next.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol

import httpx

from ..pronouns import UNSPECIFIED

if TYPE_CHECKING:
    from ..config import EngineConfig

PRONOUNDB_URL = "https://pronoundb.org/api/v1/lookup"
PERSON_PLACEHOLDER = "{person_id}"


class SourceError(Exception):
    """A directory source could not produce a reply."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class PronounSource(Protocol):
    """Protocol for a single directory source."""

    @property
    def name(self) -> str:
        """Source name used in logs and cache records."""
        ...

    async def fetch(self, person_id: str) -> str:
        """Return the raw pronoun reply for a person, or raise SourceError."""
        ...


class HTTPSource(ABC):
    """Base for sources that read ``{"pronouns": "<code>"}`` over HTTP."""

    name = "http"

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    @abstractmethod
    def build_url(self, person_id: str) -> str:
        """URL to fetch for a person."""
        ...

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)
        async with httpx.AsyncClient() as client:
            return await client.get(url)

    async def fetch(self, person_id: str) -> str:
        """Fetch and extract the ``pronouns`` field."""
        url = self.build_url(person_id)
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            raise SourceError(self.name, f"request failed: {e}") from e

        if not response.is_success:
            raise SourceError(self.name, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise SourceError(self.name, "malformed payload") from e

        if not isinstance(data, dict):
            raise SourceError(self.name, "malformed payload")

        pronouns = data.get("pronouns")
        if pronouns is None:
            return UNSPECIFIED
        if not isinstance(pronouns, str):
            raise SourceError(self.name, "malformed payload")
        return pronouns


class PronounDBSource(HTTPSource):
    """PronounDB lookup by platform id."""

    name = "pronoundb"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        platform: str = "discord",
        base_url: str = PRONOUNDB_URL,
    ) -> None:
        super().__init__(client)
        self.platform = platform
        self.base_url = base_url

    def build_url(self, person_id: str) -> str:
        query = httpx.QueryParams({"platform": self.platform, "id": person_id})
        return f"{self.base_url}?{query}"


class CustomEndpointSource(HTTPSource):
    """User-configured endpoint with a ``{person_id}`` placeholder."""

    name = "custom"

    def __init__(self, url_template: str, client: httpx.AsyncClient | None = None) -> None:
        if PERSON_PLACEHOLDER not in url_template:
            raise ValueError(f"URL template must contain {PERSON_PLACEHOLDER}")
        super().__init__(client)
        self.url_template = url_template

    def build_url(self, person_id: str) -> str:
        return self.url_template.replace(PERSON_PLACEHOLDER, person_id)


class StaticSource:
    """Labels supplied up front, e.g. manual overrides from config."""

    def __init__(self, labels: dict[str, str], name: str = "static") -> None:
        self._labels = dict(labels)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, person_id: str) -> str:
        return self._labels.get(person_id, UNSPECIFIED)


def build_sources(
    config: "EngineConfig",
    client: httpx.AsyncClient | None = None,
) -> list[PronounSource]:
    """Build the ordered source list named in the config.

    Unknown names and a ``custom`` entry without an endpoint are skipped.
    """
    sources: list[PronounSource] = []
    for name in config.sources:
        if name == "pronoundb":
            sources.append(PronounDBSource(client))
        elif name == "custom" and config.custom_endpoint:
            sources.append(CustomEndpointSource(config.custom_endpoint, client))
        elif name == "static":
            sources.append(StaticSource(config.static_labels))
    return sources
