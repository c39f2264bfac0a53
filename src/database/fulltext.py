"""
Dialect-aware full-text match construct

TextMatch(columns, term, boolean_mode) renders as:
- PostgreSQL: to_tsvector @@ plainto_tsquery (natural) / to_tsquery('w:*') (boolean)
- anything else (SQLite): whole-word LIKE (natural) / word-prefix LIKE (boolean)

Every word of the term must match (AND) within a single column, which is what
plainto_tsquery and the `&`-joined prefix query do on PostgreSQL. Each column
is matched separately and the results are OR-ed, since the searched columns
live in different tables.

Words are runs of letters and digits only, so LIKE wildcards (`%`, `_`) never
reach a pattern.
"""

import re
from typing import Sequence

from sqlalchemy import Boolean, String, and_, false, func, literal, literal_column, or_
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import ColumnElement


WORD_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)


def split_words(term: str) -> list[str]:
    """Lowercased word tokens of a free-text term, punctuation dropped"""
    return WORD_PATTERN.findall(term.lower())


class TextMatch(ColumnElement[bool]):
    """
    Boolean full-text predicate over one or more text columns

    Args:
        columns: Text columns to search
        term: Raw user search term
        boolean_mode: Use prefix (wildcard-suffixed) matching instead of
            natural-language matching
    """

    __visit_name__ = "text_match"
    inherit_cache = False
    type = Boolean()

    def __init__(self, columns: Sequence[ColumnElement], term: str, boolean_mode: bool = False):
        self.columns = list(columns)
        self.term = term
        self.boolean_mode = boolean_mode
        self.words = split_words(term)


@compiles(TextMatch)
def _compile_like(element: TextMatch, compiler, **kw) -> str:
    if not element.words:
        return compiler.process(false(), **kw)

    clauses = []
    for column in element.columns:
        if element.boolean_mode:
            haystack = literal(" ", String()) + func.lower(column)
            clauses.append(and_(*(haystack.like(f"% {word}%") for word in element.words)))
        else:
            haystack = literal(" ", String()) + func.lower(column) + literal(" ", String())
            clauses.append(and_(*(haystack.like(f"% {word} %") for word in element.words)))

    return compiler.process(or_(*clauses), **kw)


@compiles(TextMatch, "postgresql")
def _compile_postgresql(element: TextMatch, compiler, **kw) -> str:
    if not element.words:
        return compiler.process(false(), **kw)

    config = literal_column("'simple'::regconfig")
    if element.boolean_mode:
        query = func.to_tsquery(config, " & ".join(f"{word}:*" for word in element.words))
    else:
        query = func.plainto_tsquery(config, " ".join(element.words))

    clauses = [
        func.to_tsvector(config, func.coalesce(column, "")).bool_op("@@")(query)
        for column in element.columns
    ]
    return compiler.process(or_(*clauses), **kw)
