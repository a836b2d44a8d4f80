from typing import Any, Dict, Iterable, List, Optional, Tuple

from invoice_ocr.matching.normalizer import (
    correct_typos,
    normalize_article_key,
    normalize_company_name,
    normalize_text,
    strip_parentheses,
)
from invoice_ocr.matching.patterns import adjust_score, extract_patterns, pattern_score
from invoice_ocr.matching.rules import MatchingRules
from invoice_ocr.matching.similarity import similarity, tie_break
from invoice_ocr.schemas import (
    Article,
    ArticleMatch,
    Delegation,
    DelegationMatch,
    Supplier,
    SupplierMatch,
)


def _pick_best(scored: Iterable[Tuple[Any, float, str, str]]) -> Tuple[Optional[Any], float]:
    """
    Returns the highest scoring candidate from (candidate, score, query, key)
    tuples. Equal scores are ordered by the token-set ratio of query and key;
    a full tie keeps the earlier candidate.
    """
    best, best_score, best_tie, best_key = None, 0.0, None, ""
    for candidate, score, query, key in scored:
        if score <= 0 or score < best_score:
            continue
        if best is not None and score == best_score:
            if best_tie is None:
                best_tie = tie_break(query, best_key)
            tie = tie_break(query, key)
            if tie <= best_tie:
                continue
            best_tie = tie
        else:
            best_tie = None
        best, best_score, best_key = candidate, score, key
    return best, best_score


class SupplierResolver:
    def __init__(self, suppliers: Iterable[Supplier], rules: Optional[MatchingRules] = None):
        self.rules = rules or MatchingRules()
        self.suppliers = [s for s in suppliers if s.nombre]
        self._keys = [self._key(s.nombre) for s in self.suppliers]

    def _key(self, name: str) -> str:
        return normalize_company_name(strip_parentheses(name), self.rules.typo_corrections)

    @staticmethod
    def _match(supplier: Supplier, score: float, method: str) -> SupplierMatch:
        return SupplierMatch(
            codigo=supplier.codigo or "",
            cif=supplier.cif or "",
            nombre=supplier.nombre or "",
            score=round(score, 2),
            method=method,
        )

    def resolve(self, name: Optional[str]) -> SupplierMatch:
        if not name:
            return SupplierMatch()

        lowered = name.lower()
        for keyword, master_name in self.rules.supplier_overrides.items():
            if keyword.lower() in lowered:
                for supplier in self.suppliers:
                    if supplier.nombre == master_name:
                        return self._match(supplier, 100, "override")

        query = self._key(name)
        if not query:
            return SupplierMatch()

        # Inclusion in the master name is the most reliable signal
        for supplier, key in zip(self.suppliers, self._keys):
            if query in key:
                method = "exact" if query == key else "containment"
                return self._match(supplier, similarity(query, key), method)

        best, best_score = _pick_best(
            (supplier, similarity(query, key), query, key)
            for supplier, key in zip(self.suppliers, self._keys)
        )
        if best is not None and best_score > self.rules.supplier_threshold:
            return self._match(best, best_score, "similarity")
        return SupplierMatch(score=round(best_score, 2))


class DelegationResolver:
    def __init__(self, delegations: Iterable[Delegation], rules: Optional[MatchingRules] = None):
        self.rules = rules or MatchingRules()
        self.delegations = list(delegations)
        self._keys = [
            (self._key(d.razon_social), self._key(d.nombre_comercial or d.cliente))
            for d in self.delegations
        ]

    def _key(self, name: Optional[str]) -> str:
        return normalize_company_name(name, self.rules.typo_corrections)

    @staticmethod
    def _match(delegation: Delegation, score: float, method: str) -> DelegationMatch:
        return DelegationMatch(
            codigo=delegation.delegacion or delegation.codigo or "",
            razon_social=delegation.razon_social or "",
            score=round(min(score, 100.0), 2),
            method=method,
        )

    def resolve(self, client_name: Optional[str]) -> DelegationMatch:
        query = self._key(client_name)
        if not query:
            return DelegationMatch()

        scored = []
        for delegation, (legal_key, trade_key) in zip(self.delegations, self._keys):
            if query in (legal_key, trade_key):
                return self._match(delegation, 100, "exact")
            total = 0.0
            if legal_key:
                total += similarity(query, legal_key)
            if trade_key:
                total += similarity(query, trade_key) * self.rules.delegation_trade_name_weight
            scored.append((delegation, total, query, legal_key or trade_key))

        best, best_score = _pick_best(scored)
        if best is not None and best_score > self.rules.delegation_threshold:
            return self._match(best, best_score, "similarity")
        return DelegationMatch(score=round(min(best_score, 100.0), 2))


class ArticleResolver:
    def __init__(self, articles: Iterable[Article], rules: Optional[MatchingRules] = None):
        self.rules = rules or MatchingRules()
        self.articles = [a for a in articles if a.descripcion]
        corrections = self.rules.typo_corrections
        self._by_description = {}
        for article in self.articles:
            self._by_description.setdefault(article.descripcion, article)
        self._exact_keys = [normalize_article_key(a.descripcion, corrections) for a in self.articles]
        self._text_keys = [normalize_text(correct_typos(a.descripcion, corrections)) for a in self.articles]
        self._patterns = [extract_patterns(a.descripcion, corrections) for a in self.articles]

    @staticmethod
    def _match(article: Article, score: float, method: str) -> ArticleMatch:
        return ArticleMatch(
            codigo=article.codigo or "",
            subfamilia=article.subfamilia or "",
            iva=article.iva or 0.0,
            descripcion=article.descripcion or "",
            score=round(score, 2),
            method=method,
        )

    def _override(self, description: str) -> Optional[Article]:
        upper = description.strip().upper()
        for prefix, master_description in self.rules.article_overrides.items():
            if upper.startswith(prefix.upper()):
                # Only the first matching rule applies
                return self._by_description.get(master_description)
        return None

    def resolve(self, description: Optional[str]) -> ArticleMatch:
        if not description:
            return ArticleMatch()
        corrections = self.rules.typo_corrections

        article = self._override(description)
        if article is not None:
            return self._match(article, 100, "override")

        exact_key = normalize_article_key(description, corrections)
        if exact_key:
            for article, key in zip(self.articles, self._exact_keys):
                if key == exact_key:
                    return self._match(article, 100, "exact")

        query = normalize_text(correct_typos(description, corrections))
        if not query:
            return ArticleMatch()
        query_patterns = extract_patterns(description, corrections)

        best, best_score = _pick_best(
            (
                article,
                adjust_score(
                    similarity(query, key),
                    pattern_score(query_patterns, patterns),
                    self.rules.pattern_weight,
                ),
                query,
                key,
            )
            for article, key, patterns in zip(self.articles, self._text_keys, self._patterns)
        )
        if best is not None and best_score > self.rules.article_threshold:
            return self._match(best, best_score, "similarity")
        return ArticleMatch(score=round(best_score, 2))


class MasterData:
    """The three master lists fetched from the database, with their resolvers."""

    def __init__(
        self,
        suppliers: Iterable[Supplier] = (),
        articles: Iterable[Article] = (),
        delegations: Iterable[Delegation] = (),
        rules: Optional[MatchingRules] = None,
    ):
        self.rules = rules or MatchingRules()
        self.suppliers = list(suppliers)
        self.articles = list(articles)
        self.delegations = list(delegations)
        self.supplier_resolver = SupplierResolver(self.suppliers, self.rules)
        self.article_resolver = ArticleResolver(self.articles, self.rules)
        self.delegation_resolver = DelegationResolver(self.delegations, self.rules)

    @classmethod
    def from_rows(
        cls,
        proveedores: List[Dict[str, Any]],
        articulos: List[Dict[str, Any]],
        delegaciones: List[Dict[str, Any]],
        rules: Optional[MatchingRules] = None,
    ) -> "MasterData":
        return cls(
            suppliers=[Supplier.model_validate(row) for row in proveedores or []],
            articles=[Article.model_validate(row) for row in articulos or []],
            delegations=[Delegation.model_validate(row) for row in delegaciones or []],
            rules=rules,
        )

    def counts(self) -> Dict[str, int]:
        return {
            "proveedores": len(self.suppliers),
            "articulos": len(self.articles),
            "delegaciones": len(self.delegations),
        }
