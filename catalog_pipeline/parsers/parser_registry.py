"""File kind → decoder lookup.

Decoders register once and are indexed under every kind their
``supported_types()`` reports, so ``xlsx``, ``xls`` and ``csv`` share one
SpreadsheetParser instance. Decoders are stateless, so a single instance
per class serves every call, including calls from worker threads.
"""
from typing import Dict, List, Type

import structlog

from catalog_pipeline.parsers.base_parser import DecoderInterface
from catalog_pipeline.models.imported_file import DecodedSheet
from catalog_pipeline.errors.exceptions import ParserError

logger = structlog.get_logger(__name__)

_decoders: Dict[str, DecoderInterface] = {}


def register_parser(parser_class: Type[DecoderInterface]) -> List[str]:
    """Register a decoder for every file kind it supports.

    Args:
        parser_class: Decoder class that inherits from DecoderInterface

    Returns:
        File kinds now served by the decoder

    Raises:
        TypeError: If parser_class does not inherit from DecoderInterface
        ValueError: If one of its kinds already has a decoder
    """
    if not (isinstance(parser_class, type) and issubclass(parser_class, DecoderInterface)):
        raise TypeError(f"{parser_class!r} must inherit from DecoderInterface")

    decoder = parser_class()
    kinds = list(decoder.supported_types())

    taken = [kind for kind in kinds if kind in _decoders]
    if taken:
        raise ValueError(
            f"File types {taken} already handled by "
            f"{', '.join(sorted({_decoders[k].get_parser_name() for k in taken}))}"
        )

    for kind in kinds:
        _decoders[kind] = decoder

    logger.debug("decoder_registered", decoder=decoder.get_parser_name(), kinds=kinds)
    return kinds


def get_parser(file_type: str) -> DecoderInterface:
    """Decoder serving ``file_type``.

    Raises:
        ParserError: If no decoder handles the kind
    """
    decoder = _decoders.get(file_type)
    if decoder is None:
        available = ", ".join(sorted(_decoders)) or "none"
        raise ParserError(
            f"No decoder registered for '{file_type}'. Available types: {available}"
        )
    return decoder


def list_registered_parsers() -> List[str]:
    """File kinds that currently have a decoder."""
    return list(_decoders)


def decode(content: bytes, file_type: str) -> DecodedSheet:
    """Decode file bytes with the decoder registered for ``file_type``.

    Raises:
        ParserError: If the kind is unknown or decoding fails
    """
    return get_parser(file_type).decode(content, file_type)
