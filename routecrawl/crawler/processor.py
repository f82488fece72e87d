"""
Page processor interface and the default processor.
"""

from abc import ABC, abstractmethod
from typing import Dict, List
from bs4 import BeautifulSoup

from .parser import (
    extract_canonical_url,
    extract_headings,
    extract_language,
    extract_main_content,
    extract_meta_tags,
    extract_title,
)


Contents = List[str]
Metainfo = Dict[str, List[str]]


class PageProcessor(ABC):
    """
    Turns a parsed page into structured content and metadata.

    One instance is registered per route and shared by every worker, so
    implementations must not keep per-page state on ``self``.
    """

    @abstractmethod
    def contents(self, document: BeautifulSoup, params: Dict[str, str]) -> Contents:
        """Return the ordered text contents of the page."""

    @abstractmethod
    def metainfo(self, document: BeautifulSoup, params: Dict[str, str]) -> Metainfo:
        """Return metadata as a mapping of key to ordered values."""


class DefaultPageProcessor(PageProcessor):
    """
    General purpose processor.

    Contents are the title, the headings and the main text block.
    Metainfo carries the usual meta tags plus every route parameter
    under ``param:<name>``.
    """

    def __init__(self, include_main_content: bool = True):
        self.include_main_content = include_main_content

    def contents(self, document: BeautifulSoup, params: Dict[str, str]) -> Contents:
        contents = []

        title = extract_title(document)
        if title:
            contents.append(title)

        contents.extend(extract_headings(document))

        if self.include_main_content:
            main_content = extract_main_content(document)
            if main_content:
                contents.append(main_content)

        return contents

    def metainfo(self, document: BeautifulSoup, params: Dict[str, str]) -> Metainfo:
        metainfo = {key: [value] for key, value in extract_meta_tags(document).items()}

        language = extract_language(document)
        if language:
            metainfo['language'] = [language]

        canonical_url = extract_canonical_url(document)
        if canonical_url:
            metainfo['canonical_url'] = [canonical_url]

        for name, value in params.items():
            metainfo[f"param:{name}"] = [value]

        return metainfo

