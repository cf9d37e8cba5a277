"""Sphinx configuration for Storefront API documentation."""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.abspath(".."))
os.environ.setdefault("SECRET_KEY", "docs-build")

project = "Storefront API"
current_year = datetime.now().year
copyright = f"{current_year}, JBF Sport"
author = "JBF Sport"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
]

autodoc_member_order = "bysource"

templates_path = ["_templates"]
exclude_patterns: list[str] = []

html_theme = "alabaster"

html_static_path = ["_static"]
