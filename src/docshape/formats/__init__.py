"""Document drivers."""

from docshape.formats.base import MapDocumentResolver
from docshape.formats.json import JsonResolver
from docshape.formats.yaml import YamlResolver

__all__ = ["JsonResolver", "MapDocumentResolver", "YamlResolver"]
