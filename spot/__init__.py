"""Spot static site generator.

This package turns a directory of loosely structured documents (Markdown, text,
office documents, notebooks, HTML and link files) into a static website.
Every input file is matched against the content rules of a YAML configuration,
converted to HTML with pandoc when needed, and wrapped in a Jinja2 template.

The main entry point is the CLI module, which provides commands for scaffolding
new projects and building sites, optionally watching the sources and serving
the output while they change.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
