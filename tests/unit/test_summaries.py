"""
Unit tests for configuration summaries.
"""

import pytest

from journey_builder.models.delay_config import DelayConfiguration, Duration, TimeOfDay
from journey_builder.models.experiment_config import ExperimentConfiguration
from journey_builder.models.goal_config import ConditionConfiguration, GoalConfiguration
from journey_builder.models.journey import ActionPayload
from journey_builder.services.normalization import normalize, parse_delay_config
from journey_builder.services.summaries import (
    format_duration,
    format_time_of_day,
    summarize_action,
    summarize_condition,
    summarize_delay,
    summarize_experiment,
    summarize_goal,
    summarize_trigger,
)


class TestFormatting:
    @pytest.mark.parametrize("value,unit,expected", [
        (1, "days", "1 day"),
        (3, "days", "3 days"),
        (1.0, "hours", "1 hour"),
        (2.5, "weeks", "2.5 weeks"),
    ])
    def test_format_duration(self, value, unit, expected):
        assert format_duration(Duration(value=value, unit=unit)) == expected

    def test_time_of_day_in_customer_time(self):
        assert format_time_of_day(TimeOfDay(hour=9)) == "9:00 AM (customer local time)"

    def test_time_of_day_with_named_timezone(self):
        assert format_time_of_day(TimeOfDay(hour=0, minute=5), "UTC") == "12:05 AM (UTC)"
        assert format_time_of_day(TimeOfDay(hour=18, minute=30), "UTC") == "6:30 PM (UTC)"


class TestDelaySummary:
    def test_fixed_delay(self):
        assert summarize_delay(DelayConfiguration()) == "Wait 1 day"

    def test_fixed_delay_plural(self):
        config = parse_delay_config({"specificConfig": {"duration": {"value": 3, "unit": "days"}}}).value

        assert summarize_delay(config) == "Wait 3 days"

    def test_wait_until_time(self):
        config = parse_delay_config({"delayType": "wait_until_time", "specificConfig": {"time": {"hour": 9}}}).value

        assert summarize_delay(config) == "Wait until 9:00 AM (customer local time)"

    def test_wait_for_event(self):
        config = parse_delay_config({
            "delayType": "wait_for_event",
            "specificConfig": {"eventName": "order_placed", "maxWaitTime": {"value": 2, "unit": "days"}},
        }).value

        assert summarize_delay(config) == "Wait for order_placed (max 2 days)"

    def test_wait_for_event_without_name(self):
        config = parse_delay_config({"delayType": "wait_for_event"}).value

        assert summarize_delay(config) == "Wait for selected event (max 3 days)"

    def test_optimal_send_time(self):
        config = parse_delay_config({"delayType": "optimal_send_time"}).value

        assert summarize_delay(config) == "AI window 24 hours"

    def test_wait_for_attribute(self):
        config = parse_delay_config({
            "delayType": "wait_for_attribute",
            "specificConfig": {"attributePath": "customer.tier", "targetValue": "gold"},
        }).value

        assert summarize_delay(config) == "Wait for customer.tier = gold"


class TestGoalSummary:
    def test_missing_goal(self):
        assert summarize_goal(None) == "Goal not configured"

    @pytest.mark.parametrize("config,expected", [
        (GoalConfiguration(), "Journey completion"),
        (GoalConfiguration(goalType="shopify_event", eventName="order_placed"), "Shopify event • order_placed"),
        (GoalConfiguration(goalType="segment_entry"), "Segment entry • segment"),
        (GoalConfiguration(goalType="revenue_target"), "revenue target"),
    ])
    def test_goal_types(self, config, expected):
        assert summarize_goal(config) == expected


class TestExperimentSummary:
    def test_summary_lists_variants_and_primary_goal(self, experiment_config):
        config = ExperimentConfiguration.model_validate(experiment_config)

        assert summarize_experiment(config) == "2 variants • Purchases • Control 50.0%, Ten percent off 50.0%"

    def test_summary_without_goal(self):
        assert summarize_experiment(ExperimentConfiguration()) == (
            "2 variants • No primary goal • Control 50.0%, Variant B 50.0%"
        )


class TestTriggerSummary:
    @pytest.mark.parametrize("value,expected", [
        ({"triggerType": "segment_joined", "segmentId": "seg_1"}, "Enters segment • seg_1"),
        ({"category": "segment", "segment": {"mode": "exit", "segmentName": "VIP"}}, "Exits segment • VIP"),
        ({"triggerType": "cart_abandoned"}, "Cart abandoned • any product"),
        (
            {"category": "shopify_event", "shopifyEvent": {"productSelection": {"mode": "specific", "productIds": ["a", "b"]}}},
            "Order placed • 2 products",
        ),
        (
            {"category": "time_based", "timeBased": {"type": "recurring_schedule", "cadence": "daily", "timeOfDay": "08:00"}},
            "Daily at 08:00 (UTC)",
        ),
        (
            {"category": "time_based", "timeBased": {"type": "attribute_date", "attributeKey": "birthday",
                                                     "offset": {"amount": -1, "unit": "days"}}},
            "1 day before birthday",
        ),
        ({"category": "manual", "manual": {"mode": "csv"}}, "Manual entry via CSV"),
        (None, "Manual entry via API"),
    ])
    def test_trigger_summaries(self, value, expected):
        assert summarize_trigger(normalize(value)) == expected


class TestConditionAndActionSummary:
    def test_no_rules(self):
        assert summarize_condition(ConditionConfiguration()) == "No rules configured"

    def test_single_rule(self):
        config = ConditionConfiguration(conditions=[{"field": "orders_count"}])

        assert summarize_condition(config) == "1 rule • match all"

    def test_multiple_rules(self):
        config = ConditionConfiguration(join="any", conditions=[{"field": "a"}, {"field": "b"}])

        assert summarize_condition(config) == "2 rules • match any"

    def test_template_action(self):
        assert summarize_action(ActionPayload(templateName="thanks", language="en")) == "Template thanks (en)"
