# License: GNU Affero General Public License v3 or later
# A copy of GNU AGPL v3 should have been included in this software package in LICENSE.txt.

""" Access to the external feature/contig data store.

    The store itself is anything implementing the QueryService protocol. The
    helpers here wrap it so that failures and malformed responses are
    reported as UpstreamError, and so that large lists of keys are queried in
    batches.
"""

import csv
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from flanker.custom_typing import Filter, QueryService

from .errors import FlankerError, UpstreamError
from .path import locate_file

EQ = "eq"
IN = "in"
ANY_VALUE = "*"


def _matches(row: Dict[str, Any], query_filter: Filter) -> bool:
    operator, field, value = query_filter
    actual = row.get(field)
    if operator == EQ:
        if value == ANY_VALUE:
            return actual not in (None, "", [])
        if isinstance(actual, list):
            return value in actual
        return actual == value
    if operator == IN:
        return actual in value
    raise ValueError(f"unknown filter operator: {operator}")


class TableQueryService:
    """ A QueryService over tables held in memory, each table being a list
        of rows and each row a dictionary of field name to value.
    """
    def __init__(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        self.tables = tables

    def query(self, table: str, filters: Sequence[Filter], fields: Sequence[str]) -> List[Tuple]:
        """ Returns a tuple of the requested fields for every row in the
            table that matches all the given filters
        """
        if table not in self.tables:
            raise ValueError(f"unknown table: {table}")
        results = []
        for row in self.tables[table]:
            if all(_matches(row, query_filter) for query_filter in filters):
                results.append(tuple(row.get(field) for field in fields))
        return results

    @classmethod
    def from_tab_files(cls, **paths: str) -> "TableQueryService":
        """ Builds a service from tab-delimited files with a header line,
            e.g. TableQueryService.from_tab_files(feature="features.tsv")

            Arguments:
                **paths: a mapping of table name to file path

            Returns:
                a new TableQueryService
        """
        tables: Dict[str, List[Dict[str, Any]]] = {}
        for table, path in paths.items():
            if not locate_file(path):
                raise ValueError(f"cannot read file for table {table}: {path}")
            with open(path, "r", encoding="utf-8", newline="") as handle:
                reader = csv.DictReader(handle, delimiter="\t")
                tables[table] = [dict(row) for row in reader]
            logging.debug("Loaded %d rows into table %s", len(tables[table]), table)
        return cls(tables)


def get_data(service: QueryService, table: str, filters: Iterable[Filter],
             fields: Sequence[str]) -> List[Tuple]:
    """ Queries the service, checking the response is well formed

        Arguments:
            service: the QueryService to use
            table: the name of the table to query
            filters: the filters rows must match
            fields: the fields to return for each row

        Returns:
            a list of tuples, each with one value per field requested
    """
    fields = list(fields)
    try:
        rows = service.query(table, list(filters), fields)
    except FlankerError:
        raise
    except Exception as err:  # anything from the service, pylint: disable=broad-except
        raise UpstreamError(f"query of {table} failed: {err}") from err
    if rows is None:
        raise UpstreamError(f"query of {table} returned no result set")
    results = []
    for row in rows:
        row = tuple(row)
        if len(row) != len(fields):
            raise UpstreamError(f"query of {table} returned {len(row)} fields, expected {len(fields)}: {row}")
        results.append(row)
    return results


def _batches(keys: Sequence[Any], batch_size: int) -> Iterator[List[Any]]:
    if batch_size < 1:
        raise ValueError(f"batch size must be positive: {batch_size}")
    for i in range(0, len(keys), batch_size):
        yield list(keys[i:i + batch_size])


def get_data_keyed(service: QueryService, table: str, filters: Iterable[Filter],
                   fields: Sequence[str], keys: Sequence[Any], key_field: Optional[str] = None,
                   batch_size: int = 100) -> List[Tuple]:
    """ Queries the service for rows with a key field in a list of keys,
        splitting the keys into batches.

        Arguments:
            service: the QueryService to use
            table: the name of the table to query
            filters: any additional filters rows must match
            fields: the fields to return for each row, must include the key field
            keys: the keys of interest
            key_field: the field containing the keys, defaults to the first field
            batch_size: the maximum number of keys per query

        Returns:
            a list of tuples, grouped in the same order as the keys
    """
    fields = list(fields)
    key_field = key_field or fields[0]
    if key_field not in fields:
        raise ValueError(f"key field {key_field} must be one of the fields requested")
    key_index = fields.index(key_field)
    filters = list(filters)

    by_key: Dict[Any, List[Tuple]] = {}
    for batch in _batches(keys, batch_size):
        for row in get_data(service, table, filters + [(IN, key_field, batch)], fields):
            by_key.setdefault(row[key_index], []).append(row)

    results = []
    for key in dict.fromkeys(keys):
        results.extend(by_key.get(key, []))
    return results


def get_data_batch(service: QueryService, table: str, filters: Iterable[Filter],
                   fields: Sequence[str], couplets: Sequence[Tuple[Any, Sequence[Any]]],
                   key_field: str, batch_size: int = 100) -> List[Tuple]:
    """ Queries the service for rows matching the keys of the given couplets,
        in batches. Each couplet is a key and a sequence of values to prefix
        the matching rows with.

        Arguments:
            service: the QueryService to use
            table: the name of the table to query
            filters: any additional filters rows must match
            fields: the fields to return for each row
            couplets: pairs of key and the values to prefix each result row with
            key_field: the field containing the keys
            batch_size: the maximum number of keys per query

        Returns:
            a list of tuples, each being a couplet's prefix followed by the
            requested fields of a matching row, in couplet order
    """
    prefixes = {key: tuple(prefix) for key, prefix in couplets}
    keyed = get_data_keyed(service, table, filters, list(fields) + [key_field],
                           list(prefixes), key_field=key_field, batch_size=batch_size)
    return [prefixes[row[-1]] + row[:-1] for row in keyed]


def as_int(value: Any, description: str) -> int:
    """ Converts a coordinate returned by the service to an int, raising an
        UpstreamError if it can't be
    """
    if isinstance(value, bool):
        raise UpstreamError(f"invalid {description}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise UpstreamError(f"invalid {description}: {value!r}") from err
