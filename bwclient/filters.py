"""
List filters — one predicate, two renderings.

The REST transport renders filters as query parameters (last write wins per
key). The CLI transport renders them as flag/value pairs, appended in order
with duplicates kept.

Query keys follow the backend contract as-is, including its casing
(``collectionId`` but ``folderid``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ListFilter:
    query_key: str
    flag: str
    value: str

    def apply_query(self, params: dict[str, str]) -> None:
        params[self.query_key] = self.value

    def apply_args(self, args: list[str]) -> None:
        args.extend([self.flag, self.value])


def with_collection_id(collection_id: str) -> ListFilter:
    return ListFilter("collectionId", "--collectionid", collection_id)


def with_folder_id(folder_id: str) -> ListFilter:
    return ListFilter("folderid", "--folderid", folder_id)


def with_organization_id(organization_id: str) -> ListFilter:
    return ListFilter("organizationId", "--organizationid", organization_id)


def with_search(search: str) -> ListFilter:
    return ListFilter("search", "--search", search)


def with_url(url: str) -> ListFilter:
    return ListFilter("url", "--url", url)


def render_query(filters: Iterable[ListFilter]) -> dict[str, str]:
    params: dict[str, str] = {}
    for f in filters:
        f.apply_query(params)
    return params


def render_args(filters: Iterable[ListFilter]) -> list[str]:
    args: list[str] = []
    for f in filters:
        f.apply_args(args)
    return args
