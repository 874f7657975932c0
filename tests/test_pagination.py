from __future__ import annotations

from auto_diagnostic.util.pagination import aws_pages, paginate


def test_paginate_yields_all_items_and_pages_in_order() -> None:
    calls = []
    pages = {
        None: (["a", "b"], "next"),
        "next": (["c"], ""),
    }

    def fetch(page):
        calls.append(page)
        return pages[page]

    items = list(paginate(fetch))
    assert items == ["a", "b", "c"]
    assert calls == [None, "next"]


def test_aws_pages_passes_tokens_and_kwargs() -> None:
    calls = []
    responses = [
        {"Items": [1, 2], "NextToken": "t1"},
        {"Items": [], "NextToken": "t2"},
        {"Items": [3]},
    ]

    def call(**kwargs):
        calls.append(kwargs)
        return responses[len(calls) - 1]

    items = aws_pages(call, items_key="Items", Filters=["f"])
    assert items == [1, 2, 3]
    assert calls == [
        {"Filters": ["f"]},
        {"Filters": ["f"], "NextToken": "t1"},
        {"Filters": ["f"], "NextToken": "t2"},
    ]


def test_aws_pages_custom_token_names() -> None:
    calls = []
    responses = [{"Rows": ["x"], "Marker": "m"}, {"Rows": ["y"], "Marker": None}]

    def call(**kwargs):
        calls.append(kwargs)
        return responses[len(calls) - 1]

    assert aws_pages(call, items_key="Rows", request_token="Marker") == ["x", "y"]
    assert calls == [{}, {"Marker": "m"}]
