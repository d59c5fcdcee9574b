import datetime

import pytest


DASHBOARD_HTML = """
<html>
<head>
<title>Account overview</title>
<script type="text/javascript">
  var growthData = [{
    name: 'Growth',
    data: [["2024-01-02", 2.5], [1704067200000, 1.2], ["2024-01-02", 3.1]]
  }];
  var chart = new Highcharts.Chart({series: growthData});
</script>
</head>
<body>
<div class="summary">
  <div class="stat"><span>Growth</span><strong>12.4%</strong></div>
  <div class="stat"><span>Profit/Loss</span><strong>$1,250.00</strong></div>
  <div class="stat"><span>Balance</span> <strong>$10,250.00</strong></div>
</div>
<table id="stats">
  <tr><td>Total Trades</td><td>120</td><td>Win %</td><td>64%</td></tr>
  <tr><td>Loss %</td><td>36%</td><td>Lots</td><td>35.2</td></tr>
  <tr><td>Swap</td><td>-4.10</td></tr>
</table>
<table id="info">
  <tr><th>Broker</th><td>Example Broker</td></tr>
  <tr><th>Broker Server</th><td>Example-Live 3</td></tr>
  <tr><th>Leverage</th><td>1:500</td></tr>
</table>
<p class="footer">Updated: 2024-03-01 10:15</p>
</body>
</html>
"""


class FakeClock:
    def __init__(self, start: datetime.datetime) -> None:
        self.current = start

    def __call__(self) -> datetime.datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += datetime.timedelta(**kwargs)


class FakeFetcher:
    """Returns (or raises) the queued responses in order, repeating the last."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def dashboard_html() -> str:
    return DASHBOARD_HTML


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.UTC))


@pytest.fixture
def make_fetcher():
    return FakeFetcher
