import importlib.util
import os
import sys

# Put project root on sys.path so autodoc can import the package if needed
sys.path.insert(0, os.path.abspath("../.."))

project = "runlength"
author = "runlength developers"

extensions = [
    "autoapi.extension",
    "sphinx.ext.doctest",
    "sphinx.ext.napoleon",
    "myst_nb",
    "sphinx_copybutton",
]
templates_path = []
exclude_patterns = []

nb_execution_mode = "off"

# Book-style layout when the theme is installed, bundled alabaster otherwise.
if importlib.util.find_spec("sphinx_book_theme") is not None:
    html_theme = "sphinx_book_theme"
    html_theme_options = {
        "path_to_docs": "docs/source",
    }
else:
    html_theme = "alabaster"
    html_theme_options = {}

myst_enable_extensions = [
    "deflist",
    "colon_fence",
    "dollarmath",
]

master_doc = "index"

# ---------------------------------------------------------------------------
# sphinx-autoapi: generate API reference for the `runlength` package
# ---------------------------------------------------------------------------
autoapi_type = "python"
# Restrict autoapi to the package source directory so module names stay
# rooted at `runlength.*`.
autoapi_dirs = ["../../runlength"]

autoapi_ignore = [
    "**/docs/**",
    "**/tests/**",
    "**/.venv/**",
    "**/__pycache__/**",
]

autodoc_typehints = "description"

autoapi_options = [
    "members",
    "undoc-members",
    "show-inheritance",
    "show-module-summary",
]

autoapi_python_class_content = "both"
