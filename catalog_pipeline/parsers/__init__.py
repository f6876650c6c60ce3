"""Decoder modules for uploaded product files."""
from catalog_pipeline.parsers.base_parser import DecoderInterface
from catalog_pipeline.parsers.parser_registry import (
    register_parser,
    get_parser,
    list_registered_parsers,
    decode,
)
from catalog_pipeline.parsers.spreadsheet_parser import SpreadsheetParser
from catalog_pipeline.parsers.xml_parser import XmlParser

register_parser(SpreadsheetParser)
register_parser(XmlParser)

__all__ = [
    "DecoderInterface",
    "register_parser",
    "get_parser",
    "list_registered_parsers",
    "decode",
    "SpreadsheetParser",
    "XmlParser",
]
