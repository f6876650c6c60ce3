"""XML decoder for product lists and NFe invoices.

Two document shapes are recognized, in this order:

1. NFe (Brazilian electronic invoice): every ``det/prod`` node becomes a row
   with the keys ``codigo, nome, ncm, cfop, unidade, quantidade, preco,
   total``.
2. Generic product lists: every ``produto``, ``item`` or ``product`` node
   becomes a row with one field per child element.

Matching is on local tag names, so namespaced documents (NFe always declares
one) decode the same as plain ones.
"""
import xml.etree.ElementTree as ET
from typing import Callable, Iterator, List, Optional, Tuple

import structlog

from catalog_pipeline.parsers.base_parser import DecoderInterface
from catalog_pipeline.models.imported_file import DecodedSheet, Row
from catalog_pipeline.errors.exceptions import ParserError

logger = structlog.get_logger(__name__)


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _to_float(text: str) -> float:
    try:
        return float(text.strip() or 0)
    except ValueError:
        return 0.0


class XmlParser(DecoderInterface):
    """Decoder for XML product documents."""
    
    # (row key, NFe tag, converter)
    NFE_FIELDS: Tuple[Tuple[str, str, Callable[[str], object]], ...] = (
        ("codigo", "cProd", str),
        ("nome", "xProd", str),
        ("ncm", "NCM", str),
        ("cfop", "CFOP", str),
        ("unidade", "uCom", str),
        ("quantidade", "qCom", _to_float),
        ("preco", "vUnCom", _to_float),
        ("total", "vProd", _to_float),
    )
    
    GENERIC_PRODUCT_TAGS = frozenset({"produto", "item", "product"})
    
    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "xml"
    
    def supported_types(self) -> Tuple[str, ...]:
        return ("xml",)
    
    def decode(self, content: bytes, file_type: str = "xml") -> DecodedSheet:
        """Decode XML bytes into rows.
        
        Raises:
            ParserError: If the XML is malformed or matches no known shape
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise ParserError(f"Malformed XML: {e}") from e
        
        rows = self._parse_nfe(root)
        shape = "nfe"
        if rows is None:
            rows = self._parse_generic(root)
            shape = "generic"
        if rows is None:
            raise ParserError("Unrecognized XML format")
        
        columns = list(rows[0].keys()) if rows else []
        logger.debug("xml_decoded", shape=shape, rows=len(rows))
        return DecodedSheet(rows=rows, columns=columns)
    
    @staticmethod
    def _iter_local(element: ET.Element, name: str) -> Iterator[ET.Element]:
        return (el for el in element.iter() if _local_name(el.tag) == name)
    
    def _find_text(self, element: ET.Element, name: str) -> str:
        found = next(self._iter_local(element, name), None)
        if found is None:
            return ""
        return "".join(found.itertext())
    
    def _parse_nfe(self, root: ET.Element) -> Optional[List[Row]]:
        details = list(self._iter_local(root, "det"))
        if not details:
            return None
        
        rows: List[Row] = []
        for det in details:
            prod = next(self._iter_local(det, "prod"), None)
            if prod is None:
                continue
            rows.append({
                key: convert(self._find_text(prod, tag))
                for key, tag, convert in self.NFE_FIELDS
            })
        return rows
    
    def _parse_generic(self, root: ET.Element) -> Optional[List[Row]]:
        nodes = [
            el for el in root.iter()
            if _local_name(el.tag) in self.GENERIC_PRODUCT_TAGS
        ]
        if not nodes:
            return None
        
        return [
            {_local_name(child.tag): "".join(child.itertext()) for child in node}
            for node in nodes
        ]
