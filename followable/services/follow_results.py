"""Result types returned by the followings/followers listings.

A listing over a single entity type is a real SQL join and stays lazy
(``FollowQuery``). A listing spanning several entity types cannot be one
join, so it is fetched per type, merged and sorted up front
(``MixedResults``). Both expose the same reading interface.
"""

import math

DEFAULT_PER_PAGE = 15


class Page:
    def __init__(self, items, page: int, per_page: int, total: int):
        self.items = list(items)
        self.page = page
        self.per_page = per_page
        self.total = total

    @property
    def pages(self) -> int:
        if not self.per_page:
            return 1
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def to_dict(self, serialize=None):
        items = self.items if serialize is None else [serialize(item) for item in self.items]
        return {
            "page": self.page,
            "limit": self.per_page,
            "total": self.total,
            "pages": self.pages,
            "items": items,
        }


def _page_args(page, per_page):
    page = page if page and page > 0 else 1
    per_page = per_page if per_page and per_page > 0 else DEFAULT_PER_PAGE
    return page, per_page


class FollowResults:
    is_materialized = False

    def all(self) -> list:
        raise NotImplementedError

    def first(self):
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def paginate(self, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        raise NotImplementedError


class FollowQuery(FollowResults):
    """Lazy single-type listing; every read is a round trip to the store."""

    def __init__(self, query):
        self._query = query

    @property
    def query(self):
        return self._query

    @property
    def statement(self):
        return self._query.statement

    def filter(self, *criterion):
        return FollowQuery(self._query.filter(*criterion))

    def filter_by(self, **kwargs):
        # Query.filter_by would target the joined edge table
        entity = self._query.column_descriptions[0]["entity"]
        return FollowQuery(
            self._query.filter(*[getattr(entity, key) == value for key, value in kwargs.items()])
        )

    def order_by(self, *clauses):
        return FollowQuery(self._query.order_by(None).order_by(*clauses))

    def limit(self, limit):
        return FollowQuery(self._query.limit(limit))

    def offset(self, offset):
        return FollowQuery(self._query.offset(offset))

    def all(self) -> list:
        return self._query.all()

    def first(self):
        return self._query.first()

    def count(self) -> int:
        return self._query.count()

    def paginate(self, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        page, per_page = _page_args(page, per_page)
        total = self._query.order_by(None).count()
        items = self._query.offset((page - 1) * per_page).limit(per_page).all()
        return Page(items, page, per_page, total)

    def __iter__(self):
        return iter(self.all())


class MixedResults(FollowResults):
    """Materialized multi-type listing, already in its final order."""

    is_materialized = True

    def __init__(self, items=()):
        self._items = list(items)

    def all(self) -> list:
        return list(self._items)

    def first(self):
        return self._items[0] if self._items else None

    def count(self) -> int:
        return len(self._items)

    def paginate(self, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        page, per_page = _page_args(page, per_page)
        start = (page - 1) * per_page
        return Page(self._items[start:start + per_page], page, per_page, len(self._items))

    def __iter__(self):
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __bool__(self):
        return bool(self._items)
