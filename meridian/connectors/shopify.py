"""MERIDIAN — Shopify Connector."""

from typing import Any, Dict, Mapping, Optional

from meridian.connectors.base import PlatformConnector, fmt_number
from meridian.core.field_mapping import coalesce
from meridian.models.canonical import (
    ChartConfig,
    ConnectorCapabilities,
    InsightType,
    PlatformType,
    QuickAction,
    StandardMetrics,
)


class ShopifyConnector(PlatformConnector):
    id = "shopify"
    name = "Shopify"
    type = PlatformType.ECOMMERCE
    store_key = "shopify"
    data_type = "ecommerce"
    recent_label = "Real-time"
    brand_color = "#95BF47"
    capabilities = ConnectorCapabilities(
        real_time_data=True,
        historical_data=True,
        predictive_analytics=False,
        cross_platform_correlation=True,
    )

    relevance_keywords = (
        "shopify",
        "ecommerce",
        "sales",
        "orders",
        "products",
        "revenue",
    )

    field_map = {
        "sessions": ("sessions", "store_sessions"),
        "users": ("users", "unique_visitors"),
        "revenue": ("revenue", "total_sales"),
        "conversion_rate": ("conversion_rate",),
        "conversions": ("orders", "total_orders"),
        "spend": ("ad_spend",),
    }
    extended_field_map = {
        "orders": ("orders", "total_orders"),
        "average_order_value": ("average_order_value", "aov"),
        "cart_additions": ("cart_additions",),
        "cart_abandonment": ("cart_abandonment_rate",),
        "returning_customers": ("returning_customers",),
        "new_customers": ("new_customers",),
    }
    primary_metrics = {"sessions": "session", "revenue": "revenue", "orders": "order"}
    supported_metrics = (
        "sessions",
        "users",
        "orders",
        "revenue",
        "averageOrderValue",
        "conversionRate",
        "cartAdditions",
        "cartAbandonment",
        "returnCustomers",
        "newCustomers",
    )
    default_chart_types = ("line", "bar", "pie", "doughnut")

    def _derive(
        self, values: Dict[str, Optional[float]], raw: Mapping[str, Any]
    ) -> Dict[str, Optional[float]]:
        if values.get("spend") is None:
            values["spend"] = 0.0
        if coalesce(raw, self.field_map["conversion_rate"]) is None:
            orders, sessions = values.get("conversions"), values.get("sessions")
            values["conversion_rate"] = (
                min(round(orders / sessions * 100, 2), 100.0)
                if orders is not None and sessions
                else None
            )
        return values

    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        q = query.lower()
        if "customer" in q or "retention" in q:
            return self._customer_chart(metrics)
        if "cart" in q or "checkout" in q:
            return self._cart_chart(metrics)
        return self._sales_chart(metrics)

    def summary_sentence(self, metrics: StandardMetrics) -> str:
        return (
            f"Your Shopify store generated ${fmt_number(metrics.revenue)} in revenue "
            f"from {fmt_number(metrics.value_of('orders'))} orders this period. Your "
            f"average order value is ${fmt_number(metrics.value_of('average_order_value'), 2)} "
            f"with a {fmt_number(metrics.conversion_rate, 1)}% conversion rate."
        )

    def _sales_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.TREND,
            "Store Sales",
            f"{fmt_number(metrics.value_of('orders'))} orders brought in "
            f"${fmt_number(metrics.revenue, 2)}.",
            0.9,
            value=metrics.revenue,
        )
        return self._chart(
            "line",
            ["Week 1", "Week 2", "Week 3", "Week 4"],
            self._weekly_series(metrics.revenue),
            insight,
            [
                QuickAction(label="Top Products", action="top_products", type="diagnostic"),
                QuickAction(label="Optimize Checkout", action="optimize_checkout", type="prescriptive"),
            ],
            dataset_label="Revenue",
            narration=self.generate_voice_narration(metrics, []),
        )

    def _customer_chart(self, metrics: StandardMetrics) -> ChartConfig:
        returning = metrics.value_of("returning_customers")
        new = metrics.value_of("new_customers")
        insight = self._insight(
            InsightType.BENCHMARK,
            "Customer Mix",
            f"{fmt_number(returning)} returning and {fmt_number(new)} new customers "
            "purchased this period.",
            0.85,
        )
        return self._chart(
            "doughnut",
            ["Returning", "New"],
            [returning, new],
            insight,
            [QuickAction(label="Loyalty Campaign", action="loyalty_campaign", type="prescriptive")],
            colors=[self.brand_color, "#5E8E3E"],
        )

    def _cart_chart(self, metrics: StandardMetrics) -> ChartConfig:
        abandonment = metrics.value_of("cart_abandonment")
        insight = self._insight(
            InsightType.ANOMALY,
            "Cart Abandonment",
            f"{fmt_number(abandonment, 1)}% of carts were abandoned before checkout.",
            0.8,
            value=abandonment,
        )
        return self._chart(
            "bar",
            ["Sessions", "Cart Additions", "Orders"],
            [metrics.sessions, metrics.value_of("cart_additions"), metrics.value_of("orders")],
            insight,
            [QuickAction(label="Recover Carts", action="recover_carts", type="prescriptive")],
            dataset_label="Checkout Funnel",
        )
