"""
Unit tests for lenient journey and graph hydration.
"""

import pytest

from journey_builder.models.journey import (
    ActionNode,
    ConditionNode,
    DelayNode,
    GoalNode,
    Journey,
    JourneyConfig,
    JourneyStats,
    TriggerNode,
)
from journey_builder.services.mapping import normalize_journey, parse_domain_node, parse_graph, parse_graph_node


class TestNormalizeJourney:
    def test_sample_journey(self, sample_journey):
        journey = normalize_journey(sample_journey)

        assert journey.id == "journey_1"
        assert journey.status == "DRAFT"
        assert journey.settings.timezone == "Asia/Kolkata"
        assert journey.stats.totalEnrollments == 10
        assert [type(node) for node in journey.nodes] == [TriggerNode, DelayNode, ConditionNode, ActionNode, GoalNode]
        assert len(journey.edges) == 4

    @pytest.mark.parametrize("raw", [None, {}, [], "journey", {"nodes": "broken", "edges": 7}])
    def test_junk_always_opens(self, raw):
        journey = normalize_journey(raw)

        assert journey.id.startswith("journey_")
        assert journey.name == "Untitled journey"
        assert journey.nodes == []
        assert journey.edges == []
        assert journey.updatedAt == journey.createdAt

    def test_unknown_status_reads_as_draft(self):
        assert normalize_journey({"id": "j", "status": "archived"}).status == "DRAFT"
        assert normalize_journey({"id": "j", "status": "active"}).status == "ACTIVE"

    def test_duplicate_node_ids_keep_first(self):
        journey = normalize_journey({
            "id": "j",
            "nodes": [{"id": "a", "type": "action", "name": "First"}, {"id": "a", "type": "delay"}],
        })

        assert len(journey.nodes) == 1
        assert journey.nodes[0].name == "First"

    def test_dangling_and_duplicate_edges_dropped(self):
        journey = normalize_journey({
            "id": "j",
            "nodes": [{"id": "a", "type": "action"}, {"id": "b", "type": "action"}],
            "edges": [
                {"id": "ab", "source": "a", "target": "b"},
                {"id": "ab", "source": "b", "target": "a"},
                {"id": "ax", "source": "a", "target": "x"},
                "junk",
            ],
        })

        assert [(edge.id, edge.source) for edge in journey.edges] == [("ab", "a")]

    def test_legacy_reentry_rules_feed_settings(self):
        journey = normalize_journey({"id": "j", "config": {"reEntryRules": {"allow": True, "cooldownDays": 3}}})

        assert journey.settings.allowReentry is True
        assert journey.settings.reentryCooldownDays == 3

    def test_serialized_config_keeps_null_max_enrollments(self, sample_journey):
        data = normalize_journey(sample_journey).to_dict()

        assert data["config"]["maxEnrollments"] is None


class TestParseDomainNode:
    def test_unknown_type_becomes_action(self):
        node = parse_domain_node({"id": "x", "type": "teleport", "data": {"note": "keep"}})

        assert isinstance(node, ActionNode)
        assert node.data == {"note": "keep"}

    def test_delay_without_config(self):
        node = parse_domain_node({"id": "w", "type": "delay", "delay": {"unit": "days", "value": 2}})

        assert node.delay.config is None
        assert node.delay.unit == "days"
        assert node.delay.value == 2

    def test_fixed_delay_config_is_authoritative(self):
        node = parse_domain_node({
            "id": "w",
            "type": "delay",
            "delay": {"unit": "hours", "value": 1, "config": {"specificConfig": {"duration": {"value": 3, "unit": "days"}}}},
        })

        assert node.delay.unit == "days"
        assert node.delay.value == 3

    def test_delay_config_lifted_from_meta(self):
        node = parse_domain_node({
            "id": "w",
            "type": "delay",
            "data": {"delayConfig": {"delayType": "wait_for_event", "specificConfig": {"eventName": "order_placed"}}},
        })

        assert node.delay.config.delayType == "wait_for_event"
        assert node.delay.config.specificConfig.eventName == "order_placed"

    def test_goal_config_lifted_from_meta(self):
        node = parse_domain_node({"id": "g", "type": "goal", "data": {"goalConfig": {"goalName": "Signup"}}})

        assert node.goal.config.goalName == "Signup"

    def test_experiment_lifted_from_meta(self, experiment_config):
        node = parse_domain_node({"id": "s", "type": "condition", "data": {"experimentConfig": experiment_config}})

        assert node.subtype == "ab_test"
        assert node.experiment.experimentName == "Discount test"

    def test_decision_settings_lifted_from_meta(self):
        node = parse_domain_node({
            "id": "d",
            "type": "condition",
            "data": {"trueLabel": "Converted", "conditionJoin": "any"},
        })

        assert node.condition.args.trueLabel == "Converted"
        assert node.condition.args.falseLabel == "No"
        assert node.condition.args.join == "any"

    def test_trigger_embedded_configuration(self):
        node = parse_domain_node({
            "id": "t",
            "type": "trigger",
            "triggerConfiguration": {"category": "manual", "manual": {"mode": "csv"}},
        })

        assert node.triggerConfiguration.manual.mode == "csv"

    def test_trigger_rebuilt_from_payload(self):
        node = parse_domain_node({"id": "t", "type": "trigger", "trigger": {"type": "abandoned_cart"}})

        assert node.triggerConfiguration.category == "shopify_event"
        assert node.triggerConfiguration.shopifyEvent.eventType == "cart_abandoned"

    def test_missing_id_is_generated(self):
        assert parse_domain_node({"type": "action"}).id.startswith("node_")


class TestParseGraph:
    def test_node_without_id_skipped(self):
        assert parse_graph_node({"data": {"variant": "action"}}) is None

    def test_invalid_configs_dropped(self):
        node = parse_graph_node({
            "id": "w",
            "position": {"x": "12", "y": None},
            "data": {"variant": "wait", "delayConfig": {"delayType": "forever"}, "hints": {"status": "paused"}},
        })

        assert node.data.delayConfig is None
        assert node.data.hints.status is None
        assert node.position.x == 12
        assert node.position.y == 0

    def test_graph_drops_dangling_edges(self):
        graph = parse_graph({
            "nodes": [{"id": "a", "data": {"variant": "action"}}, {"id": "a"}, {"id": "b"}],
            "edges": [{"id": "ab", "source": "a", "target": "b"}, {"source": "b", "target": "z"}],
        })

        assert [node.id for node in graph.nodes] == ["a", "b"]
        assert [edge.id for edge in graph.edges] == ["ab"]

    def test_legacy_decision_meta_becomes_config(self):
        node = parse_graph_node({
            "id": "d",
            "data": {"variant": "decision", "meta": {"falseLabel": "Not yet", "conditions": [{"field": "x"}]}},
        })

        assert node.data.conditionConfig.falseLabel == "Not yet"
        assert node.data.conditionConfig.trueLabel == "Yes"
        assert node.data.conditionConfig.conditions == [{"field": "x"}]

    def test_plain_decision_has_no_config(self):
        node = parse_graph_node({"id": "d", "data": {"variant": "decision", "meta": {"note": "draft"}}})

        assert node.data.conditionConfig is None


class TestJourneyModels:
    def test_unknown_config_and_stats_fields_are_kept(self):
        journey = Journey(
            id="j1",
            config=JourneyConfig(timezone="Asia/Kolkata", quietHours=True),
            stats=JourneyStats(totalEnrollments=4, bounced=1),
        )

        data = journey.to_dict()

        assert data["config"]["quietHours"] is True
        assert data["config"]["timezone"] == "Asia/Kolkata"
        assert data["stats"]["bounced"] == 1
