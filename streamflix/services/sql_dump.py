"""
SQL dump import.

Reads the INSERT statements of a database dump and turns them into the
entity collections the query layer produces, or loads them into an empty
database. Text is split into tokens first and statements are parsed from the
token stream, so quoting, escapes, comments and multi-row VALUES lists are
handled the same way everywhere.

Both the legacy dump table names (``User``, ``user2``, ``subscriber3``,
``to``, ...) and this schema's table names are understood.
"""
import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import insert
from sqlalchemy.orm import Session

from streamflix.core.exceptions import ValidationError
from streamflix.models.movie import Movie, Rating, ReviewText, WatchRecord
from streamflix.models.subscription import (
    Plan,
    Subscription,
    SubscriptionOwnerLink,
    SubscriptionPlanLink,
    SubscriptionStatus,
)
from streamflix.models.user import (
    BillingAddress,
    FreeUser,
    PaymentMethod,
    Subscriber,
    User,
    UserPhone,
    UserRole,
)
from streamflix.schemas.dump import DataSnapshot
from streamflix.schemas import movie as movie_schemas
from streamflix.schemas import subscription as subscription_schemas
from streamflix.schemas import user as user_schemas
from streamflix.services.base import BaseService
from streamflix.services.query_service import round_rating, subscription_view, table_name

logger = logging.getLogger(__name__)


class DumpParseError(ValidationError):
    """Raised when dump text cannot be tokenized or parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Token:
    kind: str  # string, identifier, number, word, punct, symbol
    value: Any
    position: int


_TOKEN_RE = re.compile(
    r"""
      (?P<space>\s+)
    | (?P<comment>--[^\n]*|\#[^\n]*|/\*.*?\*/)
    | (?P<string>'(?:[^'\\]|\\.|'')*')
    | (?P<identifier>"(?:[^"]|"")*"|`(?:[^`]|``)*`)
    | (?P<number>-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)
    | (?P<word>[A-Za-z_][A-Za-z0-9_$]*)
    | (?P<punct>[(),;.])
    | (?P<symbol>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "b": "\b", "Z": "\x1a"}


def _unquote_string(raw: str) -> str:
    body = raw[1:-1].replace("''", "'")
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body, flags=re.DOTALL)


def _number(raw: str):
    if any(ch in raw for ch in ".eE"):
        return float(raw)
    return int(raw)


def tokenize(text: str) -> Iterator[Token]:
    """
    Split SQL text into tokens, dropping whitespace and comments.

    Raises:
        DumpParseError: On an unterminated string or comment
    """
    position = 0
    length = len(text)
    while position < length:
        match = _TOKEN_RE.match(text, position)
        kind = match.lastgroup
        raw = match.group()

        if kind == "symbol" and raw in "'\"`":
            raise DumpParseError("Unterminated quoted value", position)
        if kind == "symbol" and text.startswith("/*", position):
            raise DumpParseError("Unterminated comment", position)

        if kind == "string":
            yield Token("string", _unquote_string(raw), position)
        elif kind == "identifier":
            quote = raw[0]
            yield Token("identifier", raw[1:-1].replace(quote * 2, quote), position)
        elif kind == "number":
            yield Token("number", _number(raw), position)
        elif kind in ("word", "punct", "symbol"):
            yield Token(kind, raw, position)
        position = match.end()


def split_statements(tokens: Sequence[Token]) -> List[List[Token]]:
    statements: List[List[Token]] = []
    current: List[Token] = []
    for token in tokens:
        if token.kind == "punct" and token.value == ";":
            if current:
                statements.append(current)
            current = []
        else:
            current.append(token)
    if current:
        statements.append(current)
    return statements


# ---------------------------------------------------------------------------
# Statement parser
# ---------------------------------------------------------------------------

@dataclass
class InsertStatement:
    table: str
    columns: Optional[List[str]]
    rows: List[List[Any]]


class _StatementParser:
    """Recursive-descent parser over one statement's tokens."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            end = self.tokens[-1].position if self.tokens else None
            raise DumpParseError("Unexpected end of statement", end)
        self.index += 1
        return token

    def is_word(self, *words: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == "word" and token.value.upper() in words

    def is_punct(self, value: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == "punct" and token.value == value

    def expect_punct(self, value: str) -> Token:
        token = self.advance()
        if token.kind != "punct" or token.value != value:
            raise DumpParseError(f"Expected '{value}', found {token.value!r}", token.position)
        return token

    def expect_word(self, *words: str) -> Token:
        token = self.advance()
        if token.kind != "word" or token.value.upper() not in words:
            raise DumpParseError(f"Expected {' or '.join(words)}, found {token.value!r}", token.position)
        return token

    def name(self) -> str:
        token = self.advance()
        if token.kind not in ("word", "identifier"):
            raise DumpParseError(f"Expected a name, found {token.value!r}", token.position)
        return token.value

    def parse_insert(self) -> Optional[InsertStatement]:
        if not self.is_word("INSERT"):
            return None
        self.advance()
        while self.is_word("IGNORE", "LOW_PRIORITY", "DELAYED", "HIGH_PRIORITY"):
            self.advance()
        self.expect_word("INTO")

        table = self.name()
        while self.is_punct("."):  # schema-qualified
            self.advance()
            table = self.name()

        columns = None
        if self.is_punct("("):
            self.advance()
            columns = [self.name()]
            while self.is_punct(","):
                self.advance()
                columns.append(self.name())
            self.expect_punct(")")

        self.expect_word("VALUES", "VALUE")
        rows = [self.row()]
        while self.is_punct(","):
            self.advance()
            rows.append(self.row())

        trailing = self.peek()
        if trailing is not None:
            raise DumpParseError(f"Unexpected {trailing.value!r} after VALUES", trailing.position)
        return InsertStatement(table=table, columns=columns, rows=rows)

    def row(self) -> List[Any]:
        self.expect_punct("(")
        values = [self.literal()]
        while self.is_punct(","):
            self.advance()
            values.append(self.literal())
        self.expect_punct(")")
        return values

    def literal(self) -> Any:
        token = self.advance()
        if token.kind in ("string", "number"):
            return token.value
        if token.kind == "word":
            word = token.value.upper()
            if word == "NULL":
                return None
            if word in ("TRUE", "FALSE"):
                return word == "TRUE"
        raise DumpParseError(f"Unsupported value {token.value!r}", token.position)


def parse_statements(text: str) -> List[InsertStatement]:
    """Parse every INSERT statement in ``text``; other statements are skipped."""
    inserts = []
    for statement in split_statements(list(tokenize(text))):
        parsed = _StatementParser(statement).parse_insert()
        if parsed is not None:
            inserts.append(parsed)
    return inserts


# ---------------------------------------------------------------------------
# Table layouts
# ---------------------------------------------------------------------------

def _text(value):
    if value is None:
        raise ValueError("value is required")
    return str(value)


def _optional_text(value):
    return None if value is None or value == "" else str(value)


def _date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(_text(value)[:10])


def _optional_date(value):
    return None if value in (None, "") else _date(value)


def _int(value):
    return int(value)


def _optional_int(value):
    return None if value is None else int(value)


def _float(value):
    return float(value)


def _status(value):
    return SubscriptionStatus(_text(value).lower())


@dataclass(frozen=True)
class DumpColumn:
    source: str  # column name in legacy dumps
    target: str  # model attribute
    convert: Callable[[Any], Any]


@dataclass(frozen=True)
class DumpTable:
    name: str
    model: type
    columns: Tuple[DumpColumn, ...]

    def column(self, name: str) -> Optional[DumpColumn]:
        name = name.lower()
        for column in self.columns:
            if name in (column.source, column.target):
                return column
        return None


# Parents before dependents, which is also the load order.
DUMP_TABLES: Tuple[DumpTable, ...] = (
    DumpTable("users", User, (
        DumpColumn("email", "email", _text),
        DumpColumn("first", "first_name", _text),
        DumpColumn("middle", "middle_name", _optional_text),
        DumpColumn("last", "last_name", _text),
        DumpColumn("birth_date", "birth_date", _optional_date),
        DumpColumn("sign_up_date", "sign_up_date", _date),
    )),
    DumpTable("user_phones", UserPhone, (
        DumpColumn("email", "email", _text),
        DumpColumn("phone_number", "phone_number", _text),
    )),
    DumpTable("free_users", FreeUser, (
        DumpColumn("email", "email", _text),
        DumpColumn("trial_end_date", "trial_end_date", _date),
    )),
    DumpTable("subscribers", Subscriber, (
        DumpColumn("email", "email", _text),
    )),
    DumpTable("payment_methods", PaymentMethod, (
        DumpColumn("email", "email", _text),
        DumpColumn("payment_method", "card_number", _text),
    )),
    DumpTable("billing_addresses", BillingAddress, (
        DumpColumn("email", "email", _text),
        DumpColumn("street", "street", _text),
        DumpColumn("city", "city", _text),
        DumpColumn("state", "state", _text),
        DumpColumn("zip", "zip_code", _text),
    )),
    DumpTable("plans", Plan, (
        DumpColumn("plan_name", "plan_name", _text),
        DumpColumn("max_screens", "max_screens", _int),
        DumpColumn("monthly_price", "monthly_price", _float),
    )),
    DumpTable("subscriptions", Subscription, (
        DumpColumn("sub_id", "sub_id", _int),
        DumpColumn("start_date", "start_date", _date),
        DumpColumn("end_date", "end_date", _date),
        DumpColumn("status", "status", _status),
    )),
    DumpTable("subscription_owners", SubscriptionOwnerLink, (
        DumpColumn("email", "email", _text),
        DumpColumn("sub_id", "sub_id", _int),
    )),
    DumpTable("subscription_plans", SubscriptionPlanLink, (
        DumpColumn("sub_id", "sub_id", _int),
        DumpColumn("plan_name", "plan_name", _text),
    )),
    DumpTable("movies", Movie, (
        DumpColumn("movie_id", "movie_id", _int),
        DumpColumn("title", "title", _text),
        DumpColumn("production_company", "production_company", _optional_text),
        DumpColumn("length_of_movie", "length", _optional_int),
        DumpColumn("release_year", "release_year", _optional_int),
        DumpColumn("genre", "genre", _optional_text),
    )),
    DumpTable("ratings", Rating, (
        DumpColumn("movie_id", "movie_id", _int),
        DumpColumn("rating_id", "rating_id", _int),
        DumpColumn("user_name", "user_email", _text),
        DumpColumn("stars", "stars", _float),
        DumpColumn("date", "rating_date", _date),
    )),
    DumpTable("review_texts", ReviewText, (
        DumpColumn("movie_id", "movie_id", _int),
        DumpColumn("rating_id", "rating_id", _int),
        DumpColumn("review_text", "review_text", _text),
    )),
    DumpTable("watch_records", WatchRecord, (
        DumpColumn("email", "email", _text),
        DumpColumn("movie_id", "movie_id", _int),
    )),
)

_TABLES_BY_NAME: Dict[str, DumpTable] = {table.name: table for table in DUMP_TABLES}

DumpRows = Dict[str, List[Dict[str, Any]]]


def _normalize_row(table: DumpTable, statement: InsertStatement, values: List[Any]) -> Dict[str, Any]:
    if statement.columns is None:
        if len(values) != len(table.columns):
            raise DumpParseError(
                f"{statement.table} row has {len(values)} values, expected {len(table.columns)}"
            )
        pairs = zip(table.columns, values)
    else:
        if len(values) != len(statement.columns):
            raise DumpParseError(
                f"{statement.table} row has {len(values)} values for {len(statement.columns)} columns"
            )
        pairs = [
            (table.column(name), value)
            for name, value in zip(statement.columns, values)
            if table.column(name) is not None
        ]

    row = {column.target: None for column in table.columns}
    for column, value in pairs:
        row[column.target] = value

    try:
        return {column.target: column.convert(row[column.target]) for column in table.columns}
    except (TypeError, ValueError) as e:
        raise DumpParseError(f"Bad value in {statement.table}: {e}") from e


def parse_dump(text: str) -> DumpRows:
    """
    Parse dump text into rows per table.

    Args:
        text: The dump text

    Returns:
        DumpRows: Rows keyed by this schema's table names, each row keyed
            by model attribute. Every known table is present.

    Raises:
        DumpParseError: If the text cannot be parsed
    """
    tables: DumpRows = {table.name: [] for table in DUMP_TABLES}
    for statement in parse_statements(text):
        resolved = table_name(statement.table)
        table = _TABLES_BY_NAME.get(resolved) if resolved else None
        if table is None:
            logger.debug(f"Skipping rows for unknown table {statement.table}")
            continue
        tables[table.name].extend(_normalize_row(table, statement, values) for values in statement.rows)

    logger.info(
        "Parsed dump: "
        + ", ".join(f"{len(rows)} {name}" for name, rows in tables.items() if rows)
    )
    return tables


# ---------------------------------------------------------------------------
# Snapshot and load
# ---------------------------------------------------------------------------

class _Row:
    """Attribute access over a parsed row."""

    def __init__(self, values: Dict[str, Any]):
        self.__dict__.update(values)


def build_snapshot(tables: DumpRows) -> DataSnapshot:
    """
    Assemble parsed rows into the views the list endpoints return.

    Args:
        tables: Output of parse_dump

    Returns:
        DataSnapshot: Users, movies, plans, subscriptions, ratings and watches
    """
    phones = defaultdict(list)
    for row in tables["user_phones"]:
        phones[row["email"]].append(row["phone_number"])
    trial_ends = {row["email"]: row["trial_end_date"] for row in tables["free_users"]}
    subscribers = {row["email"] for row in tables["subscribers"]}

    users = []
    names = {}
    for row in sorted(tables["users"], key=lambda r: r["email"]):
        names[row["email"]] = f"{row['first_name']} {row['last_name']}"
        if row["email"] in subscribers:
            role = UserRole.SUBSCRIBER
        elif row["email"] in trial_ends:
            role = UserRole.FREE_USER
        else:
            role = UserRole.USER
        users.append(
            user_schemas.User(
                **row,
                user_type=role,
                trial_end_date=trial_ends.get(row["email"]),
                phone_numbers=phones[row["email"]],
            )
        )
    users.sort(key=lambda u: u.sign_up_date, reverse=True)

    stars = defaultdict(list)
    for row in tables["ratings"]:
        stars[row["movie_id"]].append(row["stars"])
    movies = [
        movie_schemas.Movie(
            id=row["movie_id"],
            title=row["title"],
            production_company=row["production_company"],
            length=row["length"],
            release_year=row["release_year"],
            genre=row["genre"],
            average_rating=round_rating(
                sum(stars[row["movie_id"]]) / len(stars[row["movie_id"]]) if stars[row["movie_id"]] else None
            ),
            total_ratings=len(stars[row["movie_id"]]),
        )
        for row in sorted(tables["movies"], key=lambda r: (r["title"], r["movie_id"]))
    ]

    plans_by_name = {row["plan_name"]: _Row(row) for row in tables["plans"]}
    plans = [
        subscription_schemas.Plan(plan_name=p.plan_name, max_screens=p.max_screens, monthly_price=p.monthly_price)
        for p in sorted(plans_by_name.values(), key=lambda p: (p.monthly_price, p.plan_name))
    ]

    subscriptions_by_id = {row["sub_id"]: row for row in tables["subscriptions"]}
    plan_links = {row["sub_id"]: row["plan_name"] for row in tables["subscription_plans"]}
    addresses: Dict[str, _Row] = {}
    for row in tables["billing_addresses"]:
        addresses.setdefault(row["email"], _Row(row))
    payments: Dict[str, _Row] = {}
    for row in tables["payment_methods"]:
        payments.setdefault(row["email"], _Row(row))

    subscriptions = []
    for link in tables["subscription_owners"]:
        subscription = subscriptions_by_id.get(link["sub_id"])
        plan = plans_by_name.get(plan_links.get(link["sub_id"]))
        if subscription is None or plan is None:
            logger.warning(f"Skipping subscription {link['sub_id']} without subscription or plan rows")
            continue
        subscriptions.append(
            subscription_view(
                subscription["sub_id"],
                link["email"],
                subscription["status"],
                subscription["start_date"],
                subscription["end_date"],
                plan,
                address=addresses.get(link["email"]),
                payment=payments.get(link["email"]),
                holder=names.get(link["email"]),
            )
        )
    subscriptions.sort(key=lambda s: (s.start_date, s.id), reverse=True)

    reviews = {(row["movie_id"], row["rating_id"]): row["review_text"] for row in tables["review_texts"]}
    ratings = sorted(
        (
            movie_schemas.Rating(**row, review_text=reviews.get((row["movie_id"], row["rating_id"])))
            for row in tables["ratings"]
        ),
        key=lambda r: (-r.rating_date.toordinal(), r.movie_id, r.rating_id),
    )

    watches = [
        movie_schemas.Watch(**row)
        for row in sorted(tables["watch_records"], key=lambda r: (r["email"], r["movie_id"]))
    ]

    return DataSnapshot(
        users=users,
        movies=movies,
        plans=plans,
        subscriptions=subscriptions,
        ratings=ratings,
        watches=watches,
    )


class SqlDumpImporter(BaseService):
    """
    Service parsing dumps and loading them into the database.
    """

    def snapshot(self, text: str) -> DataSnapshot:
        """Parse a dump into entity collections without touching the database."""
        return build_snapshot(parse_dump(text))

    def load(self, text: str) -> Dict[str, int]:
        """
        Insert every row of a dump, parents first, in one transaction.

        Args:
            text: The dump text

        Returns:
            Dict[str, int]: Rows inserted per table

        Raises:
            DumpParseError: If the text cannot be parsed
            TransactionError: If an insert fails; nothing is kept
        """
        tables = parse_dump(text)
        with self.transaction("load SQL dump"):
            counts = load_dump(self.db, tables)

        logger.info(f"Loaded dump: {counts}")
        return counts


def load_dump(db: Session, tables: DumpRows) -> Dict[str, int]:
    """Insert parsed rows parents first, inside the caller's transaction."""
    counts: Dict[str, int] = {}
    for table in DUMP_TABLES:
        rows = tables.get(table.name, [])
        if rows:
            db.execute(insert(table.model), rows)
        counts[table.name] = len(rows)
    return counts
