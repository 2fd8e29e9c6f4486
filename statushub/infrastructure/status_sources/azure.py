from __future__ import annotations
"""
statushub/infrastructure/status_sources/azure.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Source Azure : page de statut HTML rendue côté serveur (pas d'API publique).

Structure lue (une ligne par service, une cellule par région) :

    <tr>
      <td>Virtual Machines</td>
      <td class="status-cell"><span data-label="Good"><svg><use xlink:href="#svg-check"/></svg></span></td>
      ...
    </tr>

Statut d'un service = le pire de ses régions (`data-label`, puis symbole SVG).
"Not available" (service absent de la région) est ignoré. Statut global =
MAJOR_OUTAGE > DEGRADED > MAINTENANCE > OPERATIONAL. Pas d'incidents : Azure
n'expose que des composants.
"""

from html.parser import HTMLParser
from typing import Dict, List, Optional

import httpx

from statushub.domain.enums import ServiceStatus
from statushub.domain.models import ComponentState, LiveServiceStatus
from statushub.infrastructure.status_sources.base import (
    FetchError,
    FetchResult,
    ServiceConfig,
)

AZURE_STATUS_URL = "https://azure.status.microsoft/en-us/status"
# page lourde : timeout propre, plus long que celui des API JSON
AZURE_TIMEOUT_SECONDS = 25.0

DATA_LABEL_MAP: Dict[str, ServiceStatus] = {
    "good": ServiceStatus.OPERATIONAL,
    "warning": ServiceStatus.DEGRADED,
    "degraded": ServiceStatus.DEGRADED,
    "critical": ServiceStatus.MAJOR_OUTAGE,
    "error": ServiceStatus.MAJOR_OUTAGE,
    "information": ServiceStatus.MAINTENANCE,
    "advisory": ServiceStatus.MAINTENANCE,
}

SVG_SYMBOL_MAP = (
    ("svg-check", ServiceStatus.OPERATIONAL),
    ("svg-health-warning", ServiceStatus.DEGRADED),
    ("svg-health-error", ServiceStatus.MAJOR_OUTAGE),
    ("svg-health-information", ServiceStatus.MAINTENANCE),
)

# plus petit = pire
_SEVERITY_ORDER = {
    ServiceStatus.MAJOR_OUTAGE: 0,
    ServiceStatus.DEGRADED: 1,
    ServiceStatus.MAINTENANCE: 2,
    ServiceStatus.OPERATIONAL: 3,
}


def map_data_label(label: str) -> Optional[ServiceStatus]:
    return DATA_LABEL_MAP.get((label or "").strip().lower())


def map_svg_symbol(href: str) -> Optional[ServiceStatus]:
    for needle, status in SVG_SYMBOL_MAP:
        if needle in (href or ""):
            return status
    return None


def worst(statuses: List[ServiceStatus]) -> ServiceStatus:
    return min(statuses, key=_SEVERITY_ORDER.__getitem__, default=ServiceStatus.OPERATIONAL)


class _StatusTableParser(HTMLParser):
    """
    Parcourt les <tr> ; seules les lignes avec au moins une cellule
    `status-cell` sont retenues (les en-têtes n'en ont pas). Premier nom
    rencontré gagné : la page répète le tableau dans un en-tête figé.
    """

    def __init__(self) -> None:
        super().__init__()
        self.rows: Dict[str, ServiceStatus] = {}

        self._in_row = False
        self._cell: Optional[str] = None  # "name" | "status" | None
        self._name_parts: List[str] = []
        self._name_done = False
        self._statuses: List[ServiceStatus] = []
        self._has_status_cell = False

    # ── tags ───────────────────────────────────────────────────────────────────

    def handle_starttag(self, tag: str, attrs: list) -> None:
        attributes = dict(attrs)
        if tag == "tr":
            self._in_row = True
            self._name_parts, self._name_done = [], False
            self._statuses, self._has_status_cell = [], False
            return
        if not self._in_row:
            return

        if tag == "td":
            classes = (attributes.get("class") or "").split()
            if "status-cell" in classes:
                self._cell = "status"
                self._has_status_cell = True
            elif not classes and not self._name_done:
                self._cell = "name"
            else:
                self._cell = None
            return

        if self._cell == "status":
            label = attributes.get("data-label")
            if label:
                mapped = map_data_label(label)
                if mapped is not None:
                    self._statuses.append(mapped)
            href = attributes.get("xlink:href") or attributes.get("href")
            if tag == "use" and href:
                mapped = map_svg_symbol(href)
                if mapped is not None:
                    self._statuses.append(mapped)

    def handle_endtag(self, tag: str) -> None:
        if tag == "td":
            if self._cell == "name":
                self._name_done = True
            self._cell = None
        elif tag == "tr" and self._in_row:
            self._in_row = False
            name = " ".join("".join(self._name_parts).split())
            if name and self._has_status_cell and name not in self.rows:
                self.rows[name] = worst(self._statuses)

    # ── data ───────────────────────────────────────────────────────────────────

    def handle_data(self, data: str) -> None:
        if self._cell == "name":
            self._name_parts.append(data)


def parse_status_page(html: str) -> List[ComponentState]:
    parser = _StatusTableParser()
    parser.feed(html)
    parser.close()
    return [ComponentState(name=n, status=s) for n, s in parser.rows.items()]


def overall_status(components: List[ComponentState]) -> ServiceStatus:
    return worst([c.status for c in components])


def build_live_status(config: ServiceConfig, components: List[ComponentState]) -> LiveServiceStatus:
    return LiveServiceStatus(
        slug=config.slug,
        name=config.name,
        current_status=overall_status(components),
        active_incidents=[],
        components=components,
    )


async def fetch_azure(client: httpx.AsyncClient, config: ServiceConfig) -> FetchResult:
    try:
        resp = await client.get(config.api_endpoint or AZURE_STATUS_URL, timeout=AZURE_TIMEOUT_SECONDS)
    except httpx.TimeoutException:
        return FetchResult.failure(config, FetchError(config.slug, "timeout"))
    except httpx.HTTPError as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"transport error: {exc}"))

    if resp.status_code != 200:
        return FetchResult.failure(config, FetchError(config.slug, f"HTTP {resp.status_code}"))

    components = parse_status_page(resp.text)
    if not components:
        # mise en page changée ou page d'erreur servie en 200
        return FetchResult.failure(config, FetchError(config.slug, "malformed body: no status rows"))

    return FetchResult.success(config, build_live_status(config, components))
