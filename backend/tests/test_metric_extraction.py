import datetime

import pytest
from pydantic import ValidationError

from perfdesk.config.settings import Settings
from perfdesk.parsing.dashboard import parse_snapshot
from perfdesk.parsing.metrics import (
    DashboardDocument,
    MetricExtractor,
    SiblingStrategy,
    TableStrategy,
    clean_text,
    parse_table_pairs,
    tabular_strategies,
)


FETCHED_AT = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.UTC)


def test_clean_text_collapses_whitespace_and_rejects_markup() -> None:
    assert clean_text("  12.4 \n\t %  ") == "12.4 %"
    assert clean_text(" Example  Broker ") == "Example Broker"
    assert clean_text("   ") is None
    assert clean_text(None) is None
    assert clean_text("<strong>12.4%</strong>") is None


def test_end_to_end_broker_and_growth() -> None:
    markup = """
    <table><tr><td>Broker</td><td>Example Broker</td></tr></table>
    <div><span>Growth</span><strong>12.4%</strong></div>
    """
    snapshot = parse_snapshot(markup, FETCHED_AT)

    assert snapshot.account_info["Broker"] == "Example Broker"
    assert snapshot.account_details["Growth"] == "12.4%"


def test_every_label_is_present_even_when_unresolved(dashboard_html: str) -> None:
    settings = Settings()
    snapshot = parse_snapshot(dashboard_html, FETCHED_AT, settings)

    assert list(snapshot.account_details) == settings.labels.account_details
    assert list(snapshot.trading_stats) == settings.labels.trading_stats
    assert list(snapshot.account_info) == settings.labels.account_info
    assert snapshot.account_details["Equity Percentage"] is None
    assert snapshot.trading_stats["Commissions"] is None
    assert snapshot.account_info["Account Type"] is None


def test_dashboard_metrics(dashboard_html: str) -> None:
    snapshot = parse_snapshot(dashboard_html, FETCHED_AT)

    assert snapshot.account_details["Growth"] == "12.4%"
    assert snapshot.account_details["Profit/Loss"] == "$1,250.00"
    assert snapshot.account_details["Balance"] == "$10,250.00"
    assert snapshot.trading_stats["Total Trades"] == "120"
    assert snapshot.trading_stats["Win %"] == "64%"
    assert snapshot.trading_stats["Loss %"] == "36%"
    assert snapshot.trading_stats["Swap"] == "-4.10"
    assert snapshot.account_info["Broker Server"] == "Example-Live 3"
    assert snapshot.account_info["Leverage"] == "1:500"
    assert snapshot.meta.updated_at == "2024-03-01 10:15"


def test_parse_is_deterministic(dashboard_html: str) -> None:
    first = parse_snapshot(dashboard_html, FETCHED_AT)
    second = parse_snapshot(dashboard_html, FETCHED_AT)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_table_pairs_read_both_column_pairs() -> None:
    document = DashboardDocument(
        "<table><tr><td>Lots</td><td>3.5</td><td>Swap</td><td>-1</td></tr>"
        "<tr><td>Lots</td><td>999</td></tr></table>"
    )
    table = document.soup.find("table")

    assert parse_table_pairs(table) == {"Lots": "3.5", "Swap": "-1"}


def test_table_strategy_only_reads_first_two_tables() -> None:
    document = DashboardDocument(
        "<table><tr><td>A</td><td>1</td></tr></table>"
        "<table><tr><td>B</td><td>2</td></tr></table>"
        "<table><tr><td>C</td><td>3</td></tr></table>"
    )
    strategy = TableStrategy(document)

    assert strategy.try_extract("B") == "2"
    assert strategy.try_extract("C") is None
    assert strategy.try_extract("b") is None


def test_sibling_strategy_reads_parent_strong() -> None:
    document = DashboardDocument("<div><strong>$1,000</strong><em>Deposits</em></div>")

    assert SiblingStrategy(document).try_extract("Deposits") == "$1,000"


def test_sibling_strategy_reads_trailing_text_node() -> None:
    document = DashboardDocument("<p><b>Account Type</b> Real, USD </p>")

    assert SiblingStrategy(document).try_extract("Account Type") == "Real, USD"


def test_label_with_trailing_colon_is_not_matched() -> None:
    document = DashboardDocument("<div><span>Leverage:</span><strong>1:100</strong></div>")
    extractor = MetricExtractor(document)

    assert extractor.extract("Leverage") is None


def test_escaped_markup_is_never_returned() -> None:
    document = DashboardDocument(
        "<table><tr><td>Broker</td><td>&lt;b&gt;Evil&lt;/b&gt;</td></tr></table>"
        "<div><span>Growth</span><strong>&lt;script&gt;x&lt;/script&gt;</strong></div>"
    )
    extractor = MetricExtractor(document)
    values = extractor.extract_group(["Broker", "Growth"])

    for value in values.values():
        assert value is None or "<" not in value


def test_scripts_are_ignored_for_label_lookup() -> None:
    document = DashboardDocument(
        "<script>Growth</script><div><span>Growth</span><strong>5%</strong></div>"
    )

    assert MetricExtractor(document).extract("Growth") == "5%"


class ExplodingStrategy:
    def try_extract(self, label: str):
        raise RuntimeError("boom")


class FixedStrategy:
    def __init__(self, value):
        self.value = value

    def try_extract(self, label: str):
        return self.value


def test_strategy_chain_skips_failures_and_empty_results() -> None:
    document = DashboardDocument("")
    extractor = MetricExtractor(
        document,
        strategies=[ExplodingStrategy(), FixedStrategy("   "), FixedStrategy(" 42 ")],
    )

    assert extractor.extract("Anything") == "42"


def test_label_node_wins_over_table_by_default() -> None:
    document = DashboardDocument(
        "<div><span>Growth</span><strong>99%</strong></div>"
        "<table><tr><td>Growth</td><td>10%</td></tr></table>"
    )

    assert MetricExtractor(document).extract("Growth") == "99%"


def test_table_wins_for_tabular_groups() -> None:
    document = DashboardDocument(
        "<div><span>Win %</span><strong>99%</strong></div>"
        "<table><tr><td>Win %</td><td>64%</td></tr></table>"
    )
    extractor = MetricExtractor(document)

    assert extractor.extract("Win %", tabular_strategies(document)) == "64%"
    assert extractor.extract_group(["Win %"], tabular_strategies(document)) == {"Win %": "64%"}


def test_account_details_prefer_label_node_over_table() -> None:
    markup = (
        "<div><span>Growth</span><strong>99%</strong></div>"
        "<table><tr><td>Growth</td><td>10%</td>"
        "<td>Total Trades</td><td>120</td></tr></table>"
    )
    snapshot = parse_snapshot(markup, FETCHED_AT)

    assert snapshot.account_details["Growth"] == "99%"
    assert snapshot.trading_stats["Total Trades"] == "120"


def test_account_details_read_table_rows() -> None:
    snapshot = parse_snapshot(
        "<table><tr><th>Balance</th><td>$500.00</td></tr></table>", FETCHED_AT
    )

    assert snapshot.account_details["Balance"] == "$500.00"


def test_parsed_snapshot_is_immutable(dashboard_html: str) -> None:
    snapshot = parse_snapshot(dashboard_html, FETCHED_AT)

    with pytest.raises(ValidationError):
        snapshot.source = "https://example.com/other"
    with pytest.raises(ValidationError):
        snapshot.meta.updated_at = None
    assert snapshot.source != "https://example.com/other"
