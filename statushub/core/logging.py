from __future__ import annotations
"""statushub/core/logging.py
~~~~~~~~~~~~~~~~~~~~~~~~
Configuration logs.
"""
import logging


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    # httpx logge chaque requête en INFO : trop bavard pour un poll toutes les 3 minutes
    logging.getLogger("httpx").setLevel(logging.WARNING)
