"""Declaration matchers for supported source grammars."""

from .base import DeclarationMatcher
from .go import GoDeclarationMatcher

__all__ = ["DeclarationMatcher", "GoDeclarationMatcher"]
