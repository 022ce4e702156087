"""
Category Taxonomy

Maps the raw category tag of a row onto one canonical bucket.

The sheet has been written by three generations of tooling, so the same
bucket appears under several spellings:
- canonical tags ("income-fixed", "expense-card", ...)
- the Korean web-UI tags ("수입-고정", "지출-카드", ...)
- the 2023-2025.09 spreadsheet tags ("수입", "지출-고정월납", "지출-연납", ...)

DESIGN DECISION: Known spellings live in an explicit, versioned alias
table (ALIASES). Free-form older tags that were never enumerated fall
through to ordered substring rules (SUBSTRING_RULES). The resolution
records which path matched, so folds that must not double count can
ignore heuristic matches.

Resolution is pure and total: it never raises.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

TAXONOMY_VERSION = 2

# Eras of the alias table
ERA_WEB_UI = "web-ui"        # Korean tags written by the web console (>= 2025.10)
ERA_LEGACY = "legacy-sheet"  # Hand-maintained spreadsheet (2023 - 2025.09)


class Category(str, Enum):
    """Canonical category tags."""
    INCOME_FIXED = "income-fixed"
    INCOME_VARIABLE = "income-variable"
    EXPENSE_CARD = "expense-card"
    EXPENSE_FIXED = "expense-fixed"
    EXPENSE_VARIABLE = "expense-variable"
    ASSET_BALANCE = "asset-balance"
    ASSET_SAVINGS = "asset-savings"
    ASSET_BOND = "asset-bond"
    ASSET_STOCK = "asset-stock"
    ASSET_STOCK_ACCOUNT = "asset-stock-account"
    # Legacy buckets, read-only
    INVESTMENT_TOTAL = "investment-total"
    WATCHLIST = "watchlist"


INCOME_CATEGORIES = frozenset({Category.INCOME_FIXED, Category.INCOME_VARIABLE})
EXPENSE_CATEGORIES = frozenset({
    Category.EXPENSE_CARD,
    Category.EXPENSE_FIXED,
    Category.EXPENSE_VARIABLE,
})


class MatchKind(str, Enum):
    """How a raw tag was resolved."""
    EXACT = "exact"
    ALIAS = "alias"
    SUBSTRING = "substring"


class AliasRule(BaseModel):
    """One entry of the alias migration table."""
    model_config = ConfigDict(frozen=True)

    alias: str
    category: Category
    era: str


class SubstringRule(BaseModel):
    """
    Fallback rule for free-form tags.

    Matches when, for every group in `all_of`, at least one needle of
    the group occurs in the lowercased tag.
    """
    model_config = ConfigDict(frozen=True)

    all_of: tuple[tuple[str, ...], ...]
    category: Category

    def matches(self, tag: str) -> bool:
        lowered = tag.lower()
        return all(any(needle in lowered for needle in group) for group in self.all_of)


class CategoryResolution(BaseModel):
    """A raw tag resolved onto a canonical category."""
    model_config = ConfigDict(frozen=True)

    raw: str
    category: Category
    match: MatchKind
    era: Optional[str] = None

    @property
    def is_explicit(self) -> bool:
        """Resolved through the canonical set or the alias table."""
        return self.match in (MatchKind.EXACT, MatchKind.ALIAS)

    @property
    def is_legacy(self) -> bool:
        """Resolved from a pre web-UI spelling."""
        return self.match == MatchKind.SUBSTRING or self.era == ERA_LEGACY

    @property
    def is_income(self) -> bool:
        return self.category in INCOME_CATEGORIES

    @property
    def is_expense(self) -> bool:
        return self.category in EXPENSE_CATEGORIES


class Unmatched(BaseModel):
    """A raw tag no rule recognizes."""
    model_config = ConfigDict(frozen=True)

    raw: str


Resolution = Union[CategoryResolution, Unmatched]


ALIASES: tuple[AliasRule, ...] = (
    # Web console tags
    AliasRule(alias="수입-고정", category=Category.INCOME_FIXED, era=ERA_WEB_UI),
    AliasRule(alias="수입-변동", category=Category.INCOME_VARIABLE, era=ERA_WEB_UI),
    AliasRule(alias="지출-카드", category=Category.EXPENSE_CARD, era=ERA_WEB_UI),
    AliasRule(alias="지출-고정", category=Category.EXPENSE_FIXED, era=ERA_WEB_UI),
    AliasRule(alias="지출-변동", category=Category.EXPENSE_VARIABLE, era=ERA_WEB_UI),
    AliasRule(alias="자산-잔고", category=Category.ASSET_BALANCE, era=ERA_WEB_UI),
    AliasRule(alias="자산-저축", category=Category.ASSET_SAVINGS, era=ERA_WEB_UI),
    AliasRule(alias="자산-채권", category=Category.ASSET_BOND, era=ERA_WEB_UI),
    AliasRule(alias="자산-주식", category=Category.ASSET_STOCK, era=ERA_WEB_UI),
    AliasRule(alias="자산-주식계좌", category=Category.ASSET_STOCK_ACCOUNT, era=ERA_WEB_UI),
    # Spreadsheet-era tags
    AliasRule(alias="수입", category=Category.INCOME_VARIABLE, era=ERA_LEGACY),
    AliasRule(alias="income", category=Category.INCOME_VARIABLE, era=ERA_LEGACY),
    AliasRule(alias="지출-고정월납", category=Category.EXPENSE_FIXED, era=ERA_LEGACY),
    AliasRule(alias="지출-연납", category=Category.EXPENSE_FIXED, era=ERA_LEGACY),
    AliasRule(alias="지출-변동생활", category=Category.EXPENSE_VARIABLE, era=ERA_LEGACY),
    AliasRule(alias="자산-투자", category=Category.INVESTMENT_TOTAL, era=ERA_LEGACY),
    AliasRule(alias="관심종목", category=Category.WATCHLIST, era=ERA_LEGACY),
)

_ALIAS_INDEX: dict[str, AliasRule] = {rule.alias: rule for rule in ALIASES}

_INCOME = ("수입", "income")
_EXPENSE = ("지출", "expense")

# Order matters: the first matching rule wins
SUBSTRING_RULES: tuple[SubstringRule, ...] = (
    SubstringRule(all_of=(_INCOME, ("고정", "fixed")), category=Category.INCOME_FIXED),
    SubstringRule(all_of=(_INCOME,), category=Category.INCOME_VARIABLE),
    SubstringRule(all_of=(_EXPENSE, ("카드", "card")), category=Category.EXPENSE_CARD),
    SubstringRule(all_of=(_EXPENSE, ("고정", "월납", "fixed")), category=Category.EXPENSE_FIXED),
    SubstringRule(all_of=(_EXPENSE,), category=Category.EXPENSE_VARIABLE),
    SubstringRule(all_of=(("자산-잔고", "asset-balance"),), category=Category.ASSET_BALANCE),
    SubstringRule(all_of=(("자산-저축", "asset-savings"),), category=Category.ASSET_SAVINGS),
)

# Generic legacy income rows used placeholder names for the two buckets
LEGACY_INCOME_RENAMES: dict[str, tuple[Category, str]] = {
    "고정수입": (Category.INCOME_FIXED, "학교월급"),
    "변동수입": (Category.INCOME_VARIABLE, "추가수입"),
}

# Name tags used to route asset rows
DEFAULT_HOLDERS: tuple[str, ...] = ("재호", "향화")
BOND_NAME_TAGS = ("채권", "bond")
OVERSEAS_STOCK_TAGS = ("해외주식", "overseas stock")
PRINCIPAL_TAG_GROUPS = (("투자", "invest"), ("원금", "principal"))
DIVIDEND_TAGS = ("배당", "dividend")


def name_has(name: str, tags: tuple[str, ...]) -> bool:
    """True when any tag occurs in name (case-insensitive)."""
    lowered = (name or "").lower()
    return any(tag.lower() in lowered for tag in tags)


def is_principal_name(name: str) -> bool:
    return all(name_has(name, group) for group in PRINCIPAL_TAG_GROUPS)


def holder_of(name: str, holders: tuple[str, ...] = DEFAULT_HOLDERS) -> Optional[str]:
    """First account holder whose tag occurs in name."""
    for holder in holders:
        if holder and holder in (name or ""):
            return holder
    return None


def resolve(raw: Optional[str]) -> Resolution:
    """
    Resolve a raw category tag.

    Exact canonical tags win, then the alias table, then the substring
    rules. Anything else, including empty input, is Unmatched.
    """
    tag = (raw or "").strip()
    if not tag:
        return Unmatched(raw=tag)

    try:
        return CategoryResolution(raw=tag, category=Category(tag), match=MatchKind.EXACT)
    except ValueError:
        pass

    rule = _ALIAS_INDEX.get(tag)
    if rule is not None:
        return CategoryResolution(
            raw=tag,
            category=rule.category,
            match=MatchKind.ALIAS,
            era=rule.era,
        )

    for substring_rule in SUBSTRING_RULES:
        if substring_rule.matches(tag):
            return CategoryResolution(
                raw=tag,
                category=substring_rule.category,
                match=MatchKind.SUBSTRING,
                era=ERA_LEGACY,
            )

    return Unmatched(raw=tag)


def same_category(a: Optional[str], b: Optional[str]) -> bool:
    """
    Whether two raw tags address the same logical bucket for key matching.

    Identical tags always do. Otherwise both must resolve explicitly
    (canonical or web-UI alias) to the same canonical category. Legacy
    and substring spellings only ever match themselves.
    """
    left = (a or "").strip()
    right = (b or "").strip()
    if left == right:
        return True
    first, second = resolve(left), resolve(right)
    if not isinstance(first, CategoryResolution) or not isinstance(second, CategoryResolution):
        return False
    for resolution in (first, second):
        if not resolution.is_explicit or resolution.is_legacy:
            return False
    return first.category == second.category
