from __future__ import annotations
"""statushub/core/services.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~
Catalogue statique des services surveillés.

L'ordre est celui du poll (batches de FETCH_BATCH_SIZE).
"""

from typing import Dict, List, Optional

from statushub.infrastructure.status_sources.base import ServiceConfig, SourceType

SERVICES: List[ServiceConfig] = [
    ServiceConfig("github", "GitHub", "devtools", "https://www.githubstatus.com"),
    ServiceConfig("openai", "OpenAI", "ai", "https://status.openai.com"),
    ServiceConfig("anthropic", "Anthropic", "ai", "https://status.anthropic.com"),
    ServiceConfig("cloudflare", "Cloudflare", "infrastructure", "https://www.cloudflarestatus.com"),
    ServiceConfig("vercel", "Vercel", "hosting", "https://www.vercel-status.com"),
    ServiceConfig("netlify", "Netlify", "hosting", "https://www.netlifystatus.com"),
    ServiceConfig("digitalocean", "DigitalOcean", "infrastructure", "https://status.digitalocean.com"),
    ServiceConfig("discord", "Discord", "communication", "https://discordstatus.com"),
    ServiceConfig("atlassian", "Atlassian", "devtools", "https://status.atlassian.com"),
    ServiceConfig("twilio", "Twilio", "communication", "https://status.twilio.com"),
    ServiceConfig("datadog", "Datadog", "monitoring", "https://status.datadoghq.com"),
    ServiceConfig("sentry", "Sentry", "monitoring", "https://status.sentry.io"),
    ServiceConfig("npm", "npm", "devtools", "https://status.npmjs.org"),
    ServiceConfig("supabase", "Supabase", "database", "https://status.supabase.com"),
    ServiceConfig("mongodb", "MongoDB Atlas", "database", "https://status.mongodb.com"),
    ServiceConfig("dropbox", "Dropbox", "storage", "https://status.dropbox.com"),
    ServiceConfig("zoom", "Zoom", "communication", "https://status.zoom.us"),
    ServiceConfig("linear", "Linear", "devtools", "https://linearstatus.com"),
    ServiceConfig(
        "gcp", "Google Cloud", "infrastructure", "https://status.cloud.google.com",
        source_type=SourceType.GCP_STATUS,
    ),
    ServiceConfig(
        "aws", "Amazon Web Services", "infrastructure", "https://health.aws.amazon.com/health/status",
        source_type=SourceType.AWS_HEALTH,
    ),
    ServiceConfig(
        "azure", "Microsoft Azure", "infrastructure", "https://azure.status.microsoft/en-us/status",
        source_type=SourceType.AZURE_HTML,
    ),
    ServiceConfig(
        "stripe", "Stripe", "payments", "https://status.stripe.com",
        source_type=SourceType.NONE,
    ),
]

_BY_SLUG: Dict[str, ServiceConfig] = {s.slug: s for s in SERVICES}


def get_service(slug: str) -> Optional[ServiceConfig]:
    return _BY_SLUG.get(slug)


def find_by_status_page_url(url: str) -> Optional[ServiceConfig]:
    """Identification webhook : slash final et casse ignorés."""
    normalized = (url or "").rstrip("/").lower()
    if not normalized:
        return None
    for s in SERVICES:
        if s.normalized_status_page_url == normalized:
            return s
    return None
