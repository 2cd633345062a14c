"""Tests for the chart builders."""
import unittest

from dashboard import cat_spend, income_vs_expense_monthly, net_trend
from reports import CategoryAggregate, MonthlyAggregate

MONTHLY = [
    MonthlyAggregate("Sep 2026", 200.0, 75.0),
    MonthlyAggregate("Oct 2026", 0.0, 30.0),
]


class TestCharts(unittest.TestCase):

    def test_monthly_bars(self):
        fig = income_vs_expense_monthly(MONTHLY)
        self.assertEqual([t.name for t in fig.data], ["Income", "Expenses"])
        self.assertEqual(list(fig.data[0].x), ["Sep 2026", "Oct 2026"])
        self.assertEqual(list(fig.data[1].y), [75.0, 30.0])

    def test_category_donut_keeps_colors(self):
        fig = cat_spend([CategoryAggregate("Food", 75.0, "#EF4444"), CategoryAggregate("Rent", 500.0, "#3B82F6")])
        pie = fig.data[0]
        self.assertEqual(pie.hole, 0.4)
        self.assertEqual(dict(zip(pie.labels, pie.marker.colors)), {"Food": "#EF4444", "Rent": "#3B82F6"})

    def test_trend_includes_net(self):
        fig = net_trend(MONTHLY)
        self.assertEqual(list(fig.data[2].y), [125.0, -30.0])

    def test_empty_inputs(self):
        self.assertEqual(len(income_vs_expense_monthly([]).data), 2)
        self.assertEqual(len(net_trend([]).data), 3)


if __name__ == "__main__":
    unittest.main()
