# statushub/infrastructure/notifications/templates/loader.py
from __future__ import annotations
"""
Chargement des templates email depuis le paquet.
Les templates utilisent la syntaxe `string.Template` ($variable).
"""
from functools import lru_cache
from importlib.resources import files
from string import Template


def load_template(name: str) -> str:
    """
    Lit un fichier template situé dans le même package.
    Ex: load_template("email_alert.html")
    """
    return files(__package__).joinpath(name).read_text(encoding="utf-8")


@lru_cache(maxsize=None)
def get_template(name: str) -> Template:
    return Template(load_template(name))


def render_template(name: str, **context: str) -> str:
    """Substitution stricte : une variable manquante lève KeyError."""
    return get_template(name).substitute(**context)
