# Configuration file for the Sphinx documentation builder.
#
# UDEOps documentation

import os
import sys

# Allow Sphinx to import the udeops package
sys.path.insert(0, os.path.abspath(".."))

# -- Project information -----------------------------------------------------
project = "UDEOps"
copyright = "2025, UDEOps"
author = "UDEOps"
release = "0.1.0"
version = "0.1.0"

# -- General configuration ---------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
]

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

# -- Options for HTML output -------------------------------------------------
html_theme = "alabaster"
html_static_path = ["_static"]
html_title = "UDEOps"

# -- Extension configuration -------------------------------------------------
autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
    "undoc-members": True,
    "show-inheritance": True,
}
# heavy runtime deps are not needed to render the API pages
autodoc_mock_imports = ["torch", "torchdiffeq", "h5py", "pysindy", "sklearn"]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
    "sympy": ("https://docs.sympy.org/latest/", None),
}

napoleon_google_docstring = True
napoleon_numpy_docstring = True
