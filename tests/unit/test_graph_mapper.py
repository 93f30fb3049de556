"""
Unit tests for graph <-> domain mapping.
"""

import pytest

from journey_builder.models.graph import GraphEdge, GraphNode, GraphNodeData
from journey_builder.models.journey import ActionNode, ExitNode, JourneyEdge, TriggerNode
from journey_builder.services.mapping import (
    apply_graph,
    normalize_journey,
    parse_graph,
    to_domain,
    to_domain_node,
    to_graph,
    variant_for,
)
from journey_builder.services.normalization import normalize, parse_delay_config


def _graph_node(node_id, **data):
    return GraphNode(id=node_id, data=GraphNodeData(**data))


class TestToGraph:
    """Domain journey -> editable graph."""

    def test_variants_and_subtypes(self, sample_journey):
        graph = to_graph(normalize_journey(sample_journey))
        variants = {node.id: (node.data.variant, node.data.subtype) for node in graph.nodes}

        assert variants == {
            "trigger_1": ("trigger", "segment_joined"),
            "wait_1": ("wait", "fixed_delay"),
            "decision_1": ("decision", "if_else"),
            "action_1": ("action", "send_whatsapp"),
            "goal_1": ("goal", "goal_achieved"),
        }

    def test_display_hints(self, sample_journey):
        graph = to_graph(normalize_journey(sample_journey))
        hints = {node.id: node.data.hints for node in graph.nodes}

        assert hints["trigger_1"].summary == "Enters segment • seg_1"
        assert hints["trigger_1"].isConfigured is True
        assert hints["wait_1"].summary == "Wait 1 day"
        assert hints["decision_1"].summary == "1 rule • match all"
        assert hints["action_1"].summary == "Template thanks (en)"
        assert hints["goal_1"].summary == "Shopify event • order_placed"

    def test_missing_delay_config_is_synthesized(self, sample_journey):
        graph = to_graph(normalize_journey(sample_journey))
        wait = graph.node_by_id("wait_1")

        assert wait.data.delayConfig.delayType == "fixed_time"
        assert wait.data.delayConfig.specificConfig.duration.value == 1
        assert wait.data.delayConfig.specificConfig.duration.unit == "days"
        assert "unit" not in wait.data.meta

    def test_description_falls_back_to_catalog(self, sample_journey):
        graph = to_graph(normalize_journey(sample_journey))

        assert graph.node_by_id("trigger_1").data.description == "Start when a customer joins a segment"
        assert graph.node_by_id("trigger_1").data.label == "New subscribers"

    def test_decision_edges_take_branch_labels(self, sample_journey):
        graph = to_graph(normalize_journey(sample_journey))
        labels = {edge.id: edge.label for edge in graph.edges}

        assert labels == {"e1": None, "e2": None, "e3": "Converted", "e4": "Not yet"}

    def test_dangling_edges_are_dropped(self, sample_journey):
        journey = normalize_journey(sample_journey)
        journey.edges.append(JourneyEdge(id="e5", source="wait_1", target="ghost"))

        graph = to_graph(journey)

        assert [edge.id for edge in graph.edges] == ["e1", "e2", "e3", "e4"]

    def test_experiment_edges_take_variant_names(self, experiment_config):
        journey = normalize_journey({
            "id": "journey_2",
            "nodes": [
                {"id": "split", "type": "condition", "subtype": "ab_test", "experiment": experiment_config},
                {"id": "a", "type": "action"},
                {"id": "b", "type": "action"},
            ],
            "edges": [
                {"id": "ea", "source": "split", "target": "a", "sourceHandle": "control"},
                {"id": "eb", "source": "split", "target": "b", "sourceHandle": "variant_b"},
            ],
        })

        graph = to_graph(journey)
        split = graph.node_by_id("split")

        assert split.data.variant == "experiment"
        assert split.data.hints.isConfigured is True
        assert [edge.label for edge in graph.edges] == ["Control", "Ten percent off"]


class TestToDomain:
    """Editable graph -> domain nodes."""

    def test_round_trip_is_stable(self, sample_journey):
        journey = normalize_journey(sample_journey)

        first = apply_graph(journey, to_graph(journey))
        second = apply_graph(first, to_graph(first))

        assert second.to_dict() == first.to_dict()
        assert first.name == "Welcome series"
        assert [edge.id for edge in first.edges] == ["e1", "e2", "e3", "e4"]

    def test_trigger_meta_carries_legacy_mirror(self, sample_journey):
        journey = normalize_journey(sample_journey)
        trigger = apply_graph(journey, to_graph(journey)).node_by_id("trigger_1")

        assert isinstance(trigger, TriggerNode)
        assert trigger.trigger.type == "segment"
        assert trigger.trigger.segmentId == "seg_1"
        assert trigger.data["triggerType"] == "segment_joined"
        assert trigger.data["segmentMode"] == "enter"
        assert trigger.data["triggerConfiguration"] == trigger.triggerConfiguration.to_dict()

    def test_hints_never_reach_meta(self, sample_journey):
        journey = normalize_journey(sample_journey)
        result = apply_graph(journey, to_graph(journey))

        for node in result.nodes:
            assert "hints" not in node.data
            assert "summary" not in node.data

    def test_cart_abandoned_payload(self):
        node = _graph_node(
            "t1",
            variant="trigger",
            subtype="cart_abandoned",
            triggerConfig=normalize({"category": "shopify_event", "shopifyEvent": {"eventType": "cart_abandoned"}}),
        )

        domain = to_domain_node(node)

        assert domain.trigger.type == "abandoned_cart"
        assert domain.subtype == "cart_abandoned"
        assert domain.data["triggerType"] == "cart_abandoned"

    def test_trigger_without_config_reads_meta(self):
        node = _graph_node("t1", variant="trigger", meta={"triggerType": "segment_joined", "segmentId": "seg_7"})

        domain = to_domain_node(node)

        assert domain.triggerConfiguration.category == "segment"
        assert domain.trigger.segmentId == "seg_7"

    def test_weeks_delay_becomes_days(self):
        config = parse_delay_config({"specificConfig": {"duration": {"value": 2, "unit": "weeks"}}}).value

        domain = to_domain_node(_graph_node("w1", variant="wait", subtype="fixed_delay", delayConfig=config))

        assert domain.delay.unit == "days"
        assert domain.delay.value == 14
        assert domain.delay.config.specificConfig.duration.unit == "weeks"

    def test_non_fixed_delay_keeps_legacy_pair(self):
        journey = normalize_journey({
            "id": "journey_3",
            "nodes": [{
                "id": "w1",
                "type": "delay",
                "delay": {"unit": "hours", "value": 12, "config": {"delayType": "wait_for_event"}},
            }],
        })

        graph = to_graph(journey)
        meta = graph.node_by_id("w1").data.meta
        domain = to_domain_node(graph.node_by_id("w1"))

        assert meta == {"unit": "hours", "duration": 12}
        assert domain.delay.unit == "hours"
        assert domain.delay.value == 12
        assert domain.delay.config.delayType == "wait_for_event"

    def test_goal_description_from_config(self, sample_journey):
        journey = normalize_journey(sample_journey)
        goal = apply_graph(journey, to_graph(journey)).node_by_id("goal_1")

        assert goal.goal.description == "Purchase"
        assert goal.goal.config.eventName == "order_placed"

    def test_goal_without_config_keeps_description(self):
        journey = normalize_journey({
            "id": "journey_4",
            "nodes": [{"id": "g", "type": "goal", "goal": {"description": "Legacy goal"}}],
        })

        graph = to_graph(journey)
        goal = to_domain_node(graph.node_by_id("g"))

        assert graph.node_by_id("g").data.hints.summary == "Goal not configured"
        assert goal.goal.config is None
        assert goal.goal.description == "Legacy goal"

    def test_exit_node_round_trip(self):
        journey = normalize_journey({"id": "journey_5", "nodes": [{"id": "done", "type": "exit"}]})

        graph = to_graph(journey)
        node = graph.node_by_id("done")

        assert node.data.variant == "goal"
        assert node.data.subtype == "exit_journey"
        assert isinstance(to_domain_node(node), ExitNode)

    def test_exit_kind_survives_custom_subtype(self):
        journey = normalize_journey({
            "id": "journey_6",
            "nodes": [{"id": "stop", "type": "exit", "subtype": "unsubscribe_exit"}],
        })

        graph = to_graph(journey)
        first = apply_graph(journey, graph)
        second = apply_graph(first, to_graph(first))

        assert graph.node_by_id("stop").data.variant == "goal"
        assert isinstance(first.node_by_id("stop"), ExitNode)
        assert first.node_by_id("stop").subtype == "unsubscribe_exit"
        assert first.node_by_id("stop").data == {}
        assert second.to_dict() == first.to_dict()

    def test_decision_reads_legacy_meta_settings(self):
        nodes = [
            _graph_node("d", variant="decision", meta={
                "trueLabel": "Converted",
                "falseLabel": "Not yet",
                "conditionJoin": "any",
                "conditions": [{"field": "orders_count", "operator": "gt", "value": 0}],
            }),
            _graph_node("a", variant="action"),
            _graph_node("b", variant="action"),
        ]
        edges = [
            GraphEdge(id="yes", source="d", target="a", sourceHandle="yes"),
            GraphEdge(id="no", source="d", target="b", sourceHandle="no"),
        ]

        domain_nodes, domain_edges = to_domain(nodes, edges)
        args = domain_nodes[0].condition.args

        assert [edge.label for edge in domain_edges] == ["Converted", "Not yet"]
        assert args.trueLabel == "Converted"
        assert args.falseLabel == "Not yet"
        assert args.join == "any"
        assert args.conditions == [{"field": "orders_count", "operator": "gt", "value": 0}]

    def test_unknown_variant_becomes_action(self):
        graph = parse_graph({"nodes": [{"id": "x", "data": {"variant": "banana", "label": "Odd"}}]})

        node = to_domain_node(graph.nodes[0])

        assert isinstance(node, ActionNode)
        assert node.name == "Odd"
        assert node.action.templateName == "WhatsApp Template"

    def test_dangling_edges_are_dropped(self):
        nodes = [_graph_node("a", variant="action"), _graph_node("b", variant="action")]
        edges = [
            GraphEdge(id="ab", source="a", target="b"),
            GraphEdge(id="ax", source="a", target="missing"),
        ]

        _, domain_edges = to_domain(nodes, edges)

        assert [edge.id for edge in domain_edges] == ["ab"]


class TestVariantFor:
    @pytest.mark.parametrize("node_type,subtype,expected", [
        ("trigger", "segment_joined", "trigger"),
        ("condition", "if_else", "decision"),
        ("condition", "ab_test", "experiment"),
        ("delay", None, "wait"),
        ("goal", None, "goal"),
        ("exit", "exit_journey", "goal"),
        ("action", "add_tag", "action"),
        ("mystery", None, "action"),
    ])
    def test_variant_mapping(self, node_type, subtype, expected):
        assert variant_for(node_type, subtype) == expected
