# Sphinx configuration for the Lost & Found Import API reference.
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys

# autodoc imports the lostfound package from the repository root
sys.path.insert(0, os.path.abspath('..'))

from lostfound import __version__  # noqa: E402

project = 'Lost & Found Import'
copyright = '2026, Lost & Found Import contributors'
author = 'Lost & Found Import contributors'
release = __version__
version = __version__

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.viewcode',
    'sphinx.ext.napoleon',
    'sphinx.ext.intersphinx',
    'sphinx_rtd_theme',
]

templates_path = ['_templates']
exclude_patterns = ['_build']
language = 'en'

# Docstrings use Google-style Args/Returns/Raises sections
napoleon_google_docstring = True
napoleon_numpy_docstring = False
autodoc_member_order = 'bysource'

html_theme = 'sphinx_rtd_theme'
html_theme_options = {
    'collapse_navigation': False,
    'navigation_depth': 3,
}

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pandas': ('https://pandas.pydata.org/docs/', None),
    'sqlalchemy': ('https://docs.sqlalchemy.org/en/20/', None),
    'pydantic': ('https://docs.pydantic.dev/latest/', None),
}
