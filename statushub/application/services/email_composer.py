from __future__ import annotations
"""statushub/application/services/email_composer.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Rendu d'un email d'alerte (sujet + HTML + texte) pour UN évènement, avec le
récap optionnel des évènements différés ("While you were away").

Deux branches :
- évènement de statut  : couleur du nouveau statut (vert si retour OPERATIONAL),
  bloc Previous -> Current ;
- évènement d'incident : couleur de l'impact (vert si résolu), bloc d'impact
  (old -> new pour les escalades), ligne de statut d'incident.

Aucun effet de bord : `now` et `site_url` sont passés par l'appelant.
Tout texte amont/utilisateur est échappé (html.escape).
"""

import html
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union
from urllib.parse import quote

from statushub.core.config import settings
from statushub.domain.enums import EventType, IncidentImpact, IncidentStatus, ServiceStatus
from statushub.domain.models import ComponentState, IncidentEvent, StatusEvent
from statushub.infrastructure.notifications.templates.loader import render_template

Event = Union[StatusEvent, IncidentEvent]

GREEN_GRADIENT = "linear-gradient(135deg, #16a34a, #22c55e)"

STATUS_DISPLAY = {
    ServiceStatus.OPERATIONAL: ("Operational", "#16a34a"),
    ServiceStatus.DEGRADED: ("Degraded", "#ca8a04"),
    ServiceStatus.PARTIAL_OUTAGE: ("Partial Outage", "#ea580c"),
    ServiceStatus.MAJOR_OUTAGE: ("Major Outage", "#ef4444"),
    ServiceStatus.MAINTENANCE: ("Maintenance", "#448aff"),
    ServiceStatus.UNKNOWN: ("Unknown", "#9e9e9e"),
}

IMPACT_DISPLAY = {
    IncidentImpact.NONE: ("None", "#9e9e9e"),
    IncidentImpact.MINOR: ("Minor", "#ca8a04"),
    IncidentImpact.MAJOR: ("Major", "#ea580c"),
    IncidentImpact.CRITICAL: ("Critical", "#ef4444"),
}

INCIDENT_STATUS_LABELS = {
    IncidentStatus.INVESTIGATING: "Investigating",
    IncidentStatus.IDENTIFIED: "Identified",
    IncidentStatus.MONITORING: "Fix deployed, monitoring",
    IncidentStatus.RESOLVED: "Resolved",
    IncidentStatus.POSTMORTEM: "Postmortem",
}

EVENT_LABELS = {
    EventType.MAJOR_OUTAGE: "Major Outage",
    EventType.PARTIAL_OUTAGE: "Partial Outage",
    EventType.DEGRADED: "Degraded Performance",
    EventType.MAINTENANCE: "Maintenance",
    EventType.RECOVERY: "Recovered",
    EventType.MAINTENANCE_COMPLETED: "Maintenance Completed",
    EventType.NEW_INCIDENT: "New Incident",
    EventType.INCIDENT_UPDATE: "Incident Update",
    EventType.INCIDENT_RESOLVED: "Incident Resolved",
    EventType.INCIDENT_ESCALATED: "Incident Escalated",
    EventType.INCIDENT_DE_ESCALATED: "Incident De-escalated",
}

EVENT_EMOJI = {
    EventType.MAJOR_OUTAGE: "\U0001f534",
    EventType.PARTIAL_OUTAGE: "\U0001f7e0",
    EventType.DEGRADED: "⚠️",
    EventType.MAINTENANCE: "\U0001f527",
    EventType.RECOVERY: "✅",
    EventType.MAINTENANCE_COMPLETED: "✅",
    EventType.NEW_INCIDENT: "\U0001f6a8",
    EventType.INCIDENT_UPDATE: "\U0001f4dd",
    EventType.INCIDENT_RESOLVED: "✅",
    EventType.INCIDENT_ESCALATED: "⬆️",
    EventType.INCIDENT_DE_ESCALATED: "⬇️",
}

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ComposedEmail:
    subject: str
    html: str
    text: str


# ──────────────────────────────────────────────────────────────────────────────
# Utilitaires
# ──────────────────────────────────────────────────────────────────────────────

def _e(value: Optional[str]) -> str:
    return html.escape(value or "", quote=True)


def _status_display(status: Optional[ServiceStatus]) -> tuple[str, str]:
    return STATUS_DISPLAY.get(status, STATUS_DISPLAY[ServiceStatus.UNKNOWN])


def _impact_display(impact: Optional[IncidentImpact]) -> tuple[str, str]:
    return IMPACT_DISPLAY.get(impact, IMPACT_DISPLAY[IncidentImpact.NONE])


def _one_line(value: str) -> str:
    return _WS_RE.sub(" ", value).strip()


def what_happened_excerpt(body: Optional[str], max_chars: Optional[int] = None) -> Optional[str]:
    """Corps de la dernière update : balises retirées, espaces réduits, tronqué avec '…'."""
    if not body:
        return None
    limit = max_chars or settings.WHAT_HAPPENED_MAX_CHARS
    text = _one_line(html.unescape(_TAG_RE.sub(" ", body)))
    if not text:
        return None
    if len(text) > limit:
        text = text[:limit].rstrip() + "…"
    return text


def format_timestamp(now: datetime) -> str:
    return now.strftime("%a, %b %d, %Y %H:%M UTC")


def service_url(site_url: str, slug: str) -> str:
    return f"{site_url.rstrip('/')}/?service={quote(slug)}"


def build_subject(event: Event) -> str:
    emoji = EVENT_EMOJI[event.event_type]
    name = event.service_name
    et = event.event_type

    if isinstance(event, StatusEvent):
        if et == EventType.RECOVERY:
            return f"{emoji} {name} is back to Operational"
        if et == EventType.MAINTENANCE_COMPLETED:
            return f"{emoji} {name} maintenance completed"
        return f"{emoji} {name}: {_status_display(event.new_status)[0]} detected"

    title = _one_line(event.incident_title)
    if et == EventType.NEW_INCIDENT:
        return f"{emoji} New incident on {name}: {title}"
    if et == EventType.INCIDENT_RESOLVED:
        return f"{emoji} Resolved on {name}: {title}"
    if et == EventType.INCIDENT_ESCALATED:
        return f"{emoji} Incident escalated on {name}: {title}"
    if et == EventType.INCIDENT_DE_ESCALATED:
        return f"{emoji} Incident de-escalated on {name}: {title}"
    return f"{emoji} Update on {name}: {title}"


def recap_detail(event: Event) -> str:
    """Ligne de détail d'un évènement différé (texte brut, non échappé)."""
    if isinstance(event, StatusEvent):
        return f"{_status_display(event.old_status)[0]} → {_status_display(event.new_status)[0]}"
    if event.old_impact is not None:
        return (
            f"{event.incident_title} ({_impact_display(event.old_impact)[0]} "
            f"→ {_impact_display(event.incident_impact)[0]})"
        )
    return event.incident_title


# ──────────────────────────────────────────────────────────────────────────────
# Blocs HTML
# ──────────────────────────────────────────────────────────────────────────────

def _card(inner: str, *, border: str = "#f0f0f3", background: str = "#fafafa") -> str:
    return (
        '        <tr><td style="padding:0 28px 24px;">\n'
        '          <table width="100%" cellpadding="0" cellspacing="0" role="presentation" '
        f'style="border-radius:10px;border:1px solid {border};background:{background};">\n'
        f'            <tr><td style="padding:14px 18px;">{inner}</td></tr>\n'
        "          </table>\n"
        "        </td></tr>"
    )


def _label(text: str, color: str = "#a1a1aa") -> str:
    return (
        '<p style="margin:0 0 2px;font-size:10px;font-weight:700;text-transform:uppercase;'
        f'letter-spacing:0.8px;color:{color};">{_e(text)}</p>'
    )


def _status_timeline_block(event: StatusEvent) -> str:
    old_label, old_color = _status_display(event.old_status)
    new_label, new_color = _status_display(event.new_status)
    rows = (
        f'{_label("Previous")}'
        f'<p style="margin:0 0 12px;font-size:15px;font-weight:600;color:{old_color};">'
        f'&#9679; {_e(old_label)}</p>'
        f'{_label("Current")}'
        f'<p style="margin:0;font-size:15px;font-weight:700;color:{new_color};">'
        f'&#9679; {_e(new_label)}</p>'
    )
    return _card(rows)


def _incident_block(event: IncidentEvent, accent: str) -> str:
    impact_label, impact_color = _impact_display(event.incident_impact)
    if event.old_impact is not None:
        old_label, old_color = _impact_display(event.old_impact)
        impact_html = (
            f'<span style="color:{old_color};">{_e(old_label)}</span> &rarr; '
            f'<span style="color:{impact_color};font-weight:700;">{_e(impact_label)}</span>'
        )
    else:
        impact_html = f'<span style="color:{impact_color};font-weight:700;">{_e(impact_label)}</span>'

    status_label = INCIDENT_STATUS_LABELS.get(event.incident_status, event.incident_status.value)
    inner = (
        f'{_label("Incident", accent)}'
        f'<p style="margin:0 0 12px;font-size:14px;color:#3f3f46;font-weight:500;line-height:1.5;">'
        f'{_e(event.incident_title)}</p>'
        f'{_label("Impact")}'
        f'<p style="margin:0 0 12px;font-size:14px;">{impact_html}</p>'
        f'{_label("Status")}'
        f'<p style="margin:0;font-size:14px;color:#3f3f46;">{_e(status_label)}</p>'
    )
    return _card(inner, border=f"{accent}33", background=f"{accent}0d")


def _components_block(components: Sequence[ComponentState]) -> str:
    items = "".join(
        f'<p style="margin:2px 0;font-size:13px;color:#3f3f46;">'
        f'<span style="color:{_status_display(c.status)[1]};">&#9679;</span> '
        f'{_e(c.name)} <span style="color:#a1a1aa;">({_e(_status_display(c.status)[0])})</span></p>'
        for c in components
    )
    return _card(_label("Affected Components") + items)


def _what_happened_block(excerpt: str) -> str:
    return _card(
        _label("What Happened")
        + f'<p style="margin:0;font-size:13px;color:#3f3f46;line-height:1.6;">{_e(excerpt)}</p>'
    )


def _recap_block(recap: Sequence[Event]) -> str:
    items = "".join(
        f'<p style="margin:6px 0 0;font-size:13px;color:#3f3f46;">'
        f'<strong>{_e(EVENT_LABELS[r.event_type])}</strong><br>'
        f'<span style="color:#71717a;">{_e(recap_detail(r))}</span></p>'
        for r in recap
    )
    return _card(_label("While you were away") + items, border="#e0e7ff", background="#f5f7ff")


# ──────────────────────────────────────────────────────────────────────────────
# API principale
# ──────────────────────────────────────────────────────────────────────────────

def compose(
    event: Event,
    recap: Sequence[Event] = (),
    *,
    now: datetime,
    site_url: Optional[str] = None,
) -> ComposedEmail:
    site = (site_url or settings.SITE_URL).rstrip("/")
    url = service_url(site, event.service_slug)
    subject = build_subject(event)
    timestamp = format_timestamp(now)

    blocks: List[str] = []
    details: List[str] = []

    if isinstance(event, StatusEvent):
        accent = _status_display(event.new_status)[1]
        is_green = event.new_status == ServiceStatus.OPERATIONAL
        eyebrow = "Service Status Update"
        blocks.append(_status_timeline_block(event))
        details.append(
            f"Status:  {_status_display(event.old_status)[0]} → {_status_display(event.new_status)[0]}"
        )
        if event.incident_title:
            blocks.append(_card(
                _label("Incident", accent)
                + f'<p style="margin:0;font-size:14px;color:#3f3f46;">{_e(event.incident_title)}</p>'
            ))
            details.append(f"Incident: {event.incident_title}")
        if is_green:
            details.append(f"\n{event.service_name} is back to normal.")
    else:
        is_green = event.event_type == EventType.INCIDENT_RESOLVED
        accent = "#16a34a" if is_green else _impact_display(event.incident_impact)[1]
        eyebrow = EVENT_LABELS[event.event_type]
        blocks.append(_incident_block(event, accent))
        details.append(f"Incident: {event.incident_title}")
        impact = _impact_display(event.incident_impact)[0]
        if event.old_impact is not None:
            impact = f"{_impact_display(event.old_impact)[0]} → {impact}"
        details.append(f"Impact:   {impact}")
        details.append(
            f"Status:   {INCIDENT_STATUS_LABELS.get(event.incident_status, event.incident_status.value)}"
        )

    affected = [c for c in event.affected_components if c.status != ServiceStatus.OPERATIONAL]
    if affected:
        blocks.append(_components_block(affected))
        details.append("\nAffected components:")
        details.extend(f"  - {c.name} ({_status_display(c.status)[0]})" for c in affected)

    excerpt = what_happened_excerpt(event.latest_update_body)
    if excerpt:
        blocks.append(_what_happened_block(excerpt))
        details.append(f"\nWhat happened:\n{excerpt}")

    if recap:
        blocks.append(_recap_block(recap))
        details.append("\nWhile you were away:")
        details.extend(f"  - {EVENT_LABELS[r.event_type]}: {recap_detail(r)}" for r in recap)

    header = GREEN_GRADIENT if is_green else f"linear-gradient(135deg, {accent}, {accent}cc)"

    html_body = render_template(
        "email_alert.html",
        title=_e(subject),
        header_background=header,
        timestamp=_e(timestamp),
        eyebrow=_e(eyebrow),
        service_name=_e(event.service_name),
        blocks="\n".join(blocks),
        service_url=_e(url),
        manage_url=_e(site),
        unsubscribe_url=_e(site),
    )
    text_body = render_template(
        "email_alert.txt",
        title=subject,
        service_name=event.service_name,
        timestamp=timestamp,
        details="\n".join(details) + "\n",
        service_url=url,
        manage_url=site,
        unsubscribe_url=site,
    )
    return ComposedEmail(subject=subject, html=html_body, text=text_body)
