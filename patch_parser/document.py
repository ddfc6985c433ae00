"""
Document adapter over BeautifulSoup.

Every component queries the tree through HtmlDocument so that selector
errors, attribute normalization and fingerprinting behave the same way
everywhere.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .constants import DEFAULT_FINGERPRINT_LENGTH
from .core.cache import CacheKeyGenerator
from .core.exceptions import DocumentError, SelectorError

ScopeRoot = BeautifulSoup | Tag


class HtmlDocument:
    """A parsed HTML document with a stable content fingerprint."""

    def __init__(
        self,
        source: str | bytes | BeautifulSoup,
        fingerprint_length: int = DEFAULT_FINGERPRINT_LENGTH,
    ):
        if isinstance(source, BeautifulSoup):
            self.soup = source
        elif isinstance(source, str | bytes):
            try:
                self.soup = BeautifulSoup(source, "lxml")
            except Exception as e:
                raise DocumentError(f"Failed to parse HTML: {e}", e) from e
        else:
            raise DocumentError(
                f"Unsupported document source: {type(source).__name__}"
            )

        self.fingerprint_length = fingerprint_length
        # Fingerprints are keyed by element identity; the tree is never mutated
        self._fingerprints: dict[int, str] = {}
        self._paths: dict[int, str] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> BeautifulSoup:
        return self.soup

    def select(self, selector: str, root: ScopeRoot | None = None) -> list[Tag]:
        """
        Run a CSS selector against root (the whole document by default).

        Raises:
            SelectorError: If the selector is rejected by the query engine
            DocumentError: If traversal fails for any other reason
        """
        scope = self.soup if root is None else root
        try:
            return scope.select(selector)
        except (SelectorSyntaxError, ValueError, NotImplementedError) as e:
            raise SelectorError(
                selector, f"Invalid selector '{selector}': {e}", e
            ) from e
        except Exception as e:
            raise DocumentError(f"Traversal failed for '{selector}': {e}", e) from e

    def select_one(self, selector: str, root: ScopeRoot | None = None) -> Tag | None:
        scope = self.soup if root is None else root
        try:
            return scope.select_one(selector)
        except (SelectorSyntaxError, ValueError, NotImplementedError) as e:
            raise SelectorError(
                selector, f"Invalid selector '{selector}': {e}", e
            ) from e
        except Exception as e:
            raise DocumentError(f"Traversal failed for '{selector}': {e}", e) from e

    @staticmethod
    def attr(element: Tag, name: str) -> str | None:
        """Return an attribute as a string; multi-valued attributes are space-joined."""
        value = element.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def text(self, element: ScopeRoot | None = None, separator: str = "") -> str:
        target = self.soup if element is None else element
        return target.get_text(separator)

    def body_text(self, separator: str = " ") -> str:
        body = self.soup.body
        return self.text(body if body is not None else self.soup, separator)

    def serialize(self, element: ScopeRoot | None = None) -> str:
        return str(self.soup if element is None else element)

    def fingerprint(self, element: ScopeRoot | None = None) -> str:
        """Truncated SHA-256 of the full serialization of element."""
        target = self.soup if element is None else element
        key = id(target)
        with self._lock:
            cached = self._fingerprints.get(key)
        if cached is not None:
            return cached

        digest = CacheKeyGenerator.generate_text_hash(
            self.serialize(target), self.fingerprint_length
        )
        with self._lock:
            self._fingerprints[key] = digest
        return digest

    def element_path(self, element: ScopeRoot | None = None) -> str:
        """
        Position of element in the tree as child indexes from the root.

        Only tag children are counted, so "1/0/2" is the third tag child of
        the first tag child of the second top-level tag. The document root
        has the empty path.
        """
        target = self.soup if element is None else element
        key = id(target)
        with self._lock:
            cached = self._paths.get(key)
        if cached is not None:
            return cached

        steps = []
        node = target
        while node.parent is not None:
            siblings = [
                child for child in node.parent.children if isinstance(child, Tag)
            ]
            steps.append(next(i for i, child in enumerate(siblings) if child is node))
            node = node.parent
        path = "/".join(str(step) for step in reversed(steps))
        with self._lock:
            self._paths[key] = path
        return path

    def contains(self, element: ScopeRoot) -> bool:
        """Whether element belongs to this document's tree."""
        if element is self.soup:
            return True
        return any(parent is self.soup for parent in element.parents)

    @staticmethod
    def is_link(element: ScopeRoot | None) -> bool:
        return isinstance(element, Tag) and element.name == "a"

    def __repr__(self) -> str:
        return f"HtmlDocument(fingerprint={self.fingerprint()!r})"


@dataclass(frozen=True, eq=False)
class SearchScope:
    """Where a selector chain runs: a container element or the whole document."""

    document: HtmlDocument
    container: Tag | None = None

    @property
    def root(self) -> ScopeRoot:
        return self.document.soup if self.container is None else self.container

    @property
    def is_document(self) -> bool:
        return self.container is None or self.container is self.document.soup

    def widen(self) -> SearchScope:
        return SearchScope(self.document)

    def fingerprint(self) -> str:
        return self.document.fingerprint(self.root)

    def path(self) -> str:
        return self.document.element_path(self.root)
