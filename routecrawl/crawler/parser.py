"""
HTML document parsing and field extraction helpers.
"""

import re
import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin
from bs4 import BeautifulSoup, Comment

from .errors import ParseError


logger = logging.getLogger(__name__)

WHITESPACE_PATTERN = re.compile(r'\s+')

MAIN_CONTENT_SELECTORS = [
    'main',
    'article',
    '[role="main"]',
    '.content',
    '.main-content',
    '#content',
    '#main'
]


def parse_document(html_content: str, url: Optional[str] = None) -> BeautifulSoup:
    """
    Parse an HTML response body into a document tree.

    Args:
        html_content: Raw HTML content
        url: URL the content was fetched from, for error reporting

    Returns:
        BeautifulSoup document built with the lxml parser

    Raises:
        ParseError: if the content is missing or the parser fails
    """
    if html_content is None:
        raise ParseError(f"No content to parse from {url}", url)

    try:
        return BeautifulSoup(html_content, 'lxml')
    except Exception as e:
        raise ParseError(f"Error parsing content from {url}: {e}", url) from e


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and strip the ends."""
    if not text:
        return ""
    return WHITESPACE_PATTERN.sub(' ', text.strip())


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """Extract page title."""
    title_tag = soup.find('title')
    if title_tag:
        return clean_text(title_tag.get_text()) or None
    return None


def extract_meta_tags(soup: BeautifulSoup) -> Dict[str, str]:
    """Extract description, keywords and author meta tags."""
    meta = {}

    meta_desc = soup.find('meta', attrs={'name': 'description'}) or \
        soup.find('meta', attrs={'property': 'og:description'})
    if meta_desc and meta_desc.get('content'):
        meta['description'] = clean_text(meta_desc['content'])

    meta_keywords = soup.find('meta', attrs={'name': 'keywords'})
    if meta_keywords and meta_keywords.get('content'):
        meta['keywords'] = clean_text(meta_keywords['content'])

    meta_author = soup.find('meta', attrs={'name': 'author'}) or \
        soup.find('meta', attrs={'property': 'article:author'})
    if meta_author and meta_author.get('content'):
        meta['author'] = clean_text(meta_author['content'])

    return meta


def extract_language(soup: BeautifulSoup) -> Optional[str]:
    """Extract page language."""
    html_tag = soup.find('html')
    if html_tag:
        return html_tag.get('lang') or html_tag.get('xml:lang')
    return None


def extract_canonical_url(soup: BeautifulSoup, base_url: Optional[str] = None) -> Optional[str]:
    """Extract canonical URL, resolved against the page URL when given."""
    canonical = soup.find('link', attrs={'rel': 'canonical'})
    if canonical and canonical.get('href'):
        href = canonical['href'].strip()
        return urljoin(base_url, href) if base_url else href
    return None


def extract_headings(soup: BeautifulSoup) -> List[str]:
    """Extract h1-h6 headings in document order."""
    headings = soup.find_all(['h1', 'h2', 'h3', 'h4', 'h5', 'h6'])
    return [clean_text(h.get_text()) for h in headings if h.get_text().strip()]


def extract_main_content(soup: BeautifulSoup) -> str:
    """
    Extract the main text block of a page.

    Works on a copy so the caller's document, which other processors
    and the link extractor also read, is left intact.
    """
    content_element = None
    for selector in MAIN_CONTENT_SELECTORS:
        content_element = soup.select_one(selector)
        if content_element:
            break

    if not content_element:
        content_element = soup.find('body') or soup

    fragment = BeautifulSoup(str(content_element), 'lxml')

    for unwanted in fragment(['script', 'style', 'noscript']):
        unwanted.decompose()
    for comment in fragment.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for unwanted in fragment.select('nav, footer, aside, .sidebar, .navigation, .menu'):
        unwanted.decompose()

    return clean_text(fragment.get_text(separator=' ', strip=True))
