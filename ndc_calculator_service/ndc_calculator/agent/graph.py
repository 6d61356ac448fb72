# ndc_calculator/agent/graph.py
from langgraph.graph import START, END, StateGraph

from ndc_calculator.agent.nodes import ParseNodes
from ndc_calculator.agent.state import ParseState


def build_parse_graph(nodes: ParseNodes):
    """
    cache_lookup -> matcher -> fallback -> rewrite -> cache_lookup (once).
    Any success goes through cache_store; every dead end goes to END.
    """
    builder = StateGraph(ParseState)

    builder.add_node("cache_lookup", nodes.cache_lookup)
    builder.add_node("matcher", nodes.matcher_attempt)
    builder.add_node("fallback", nodes.fallback_attempt)
    builder.add_node("rewrite", nodes.rewrite_attempt)
    builder.add_node("cache_store", nodes.cache_store)

    builder.add_edge(START, "cache_lookup")

    builder.add_conditional_edges("cache_lookup", nodes.route_after_lookup, {
        "done": END,
        "store": "cache_store",
        "matcher": "matcher",
    })
    builder.add_conditional_edges("matcher", nodes.route_after_matcher, {
        "store": "cache_store",
        "fallback": "fallback",
    })
    builder.add_conditional_edges("fallback", nodes.route_after_fallback, {
        "store": "cache_store",
        "rewrite": "rewrite",
        "done": END,
    })
    builder.add_conditional_edges("rewrite", nodes.route_after_rewrite, {
        "lookup": "cache_lookup",
        "done": END,
    })
    builder.add_edge("cache_store", END)

    # no checkpointer: a parse is one short synchronous run
    return builder.compile()
