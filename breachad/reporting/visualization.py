"""
Graph Visualization Module
==========================

Creates an interactive view of the resolved group membership.

Design Decisions:
-----------------
1. Interactive HTML (pyvis) over the MembershipGraph
2. Colour coding by node kind, seed groups and breach status
3. Hierarchical layout so nesting depth reads top to bottom
"""

from pathlib import Path
from typing import Optional

from pyvis.network import Network

from ..model.membership_graph import MembershipGraph
from ..model.schemas import BreachStatus, MemberKind


NODE_COLORS = {
    MemberKind.USER: "#4299e1",     # Blue
    MemberKind.GROUP: "#48bb78",    # Green
}

SEED_COLOR = "#ecc94b"              # Yellow

STATUS_COLORS = {
    BreachStatus.BREACHED: "#e53e3e",   # Red
    BreachStatus.ERROR: "#ed8936",      # Orange
    BreachStatus.CLEAN: "#4299e1",      # Blue
}

NETWORK_OPTIONS = """
{
    "nodes": {
        "font": {"size": 13, "face": "arial"},
        "borderWidth": 2,
        "shadow": true
    },
    "edges": {
        "arrows": {"to": {"enabled": true, "scaleFactor": 0.6}},
        "color": {"inherit": false},
        "smooth": {"type": "cubicBezier", "roundness": 0.3}
    },
    "layout": {
        "hierarchical": {
            "enabled": true,
            "direction": "DU",
            "sortMethod": "directed",
            "levelSeparation": 140,
            "nodeSpacing": 120
        }
    },
    "physics": {"enabled": false},
    "interaction": {
        "hover": true,
        "tooltipDelay": 100,
        "navigationButtons": true
    }
}
"""


class GraphVisualizer:
    """Renders a MembershipGraph to a standalone HTML page.

    Usage:
        visualizer = GraphVisualizer(graph, output_dir="output")
        html_path = visualizer.create_membership_visualization(outcomes)
    """

    def __init__(
        self,
        graph: MembershipGraph,
        output_dir: str = "output"
    ):
        """Initialize the visualizer.

        Args:
            graph: MembershipGraph to visualize
            output_dir: Directory for output files
        """
        self.graph = graph
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def create_membership_visualization(
        self,
        outcomes: Optional[list] = None,
        filename: str = "membership_graph.html"
    ) -> Optional[str]:
        """Create the interactive membership graph.

        Args:
            outcomes: BreachOutcomes used to colour user nodes
            filename: Output filename

        Returns:
            Path to the generated HTML file, or None for an empty graph
        """
        if self.graph.node_count == 0:
            return None

        status_by_email = {
            o.email.lower(): o for o in (outcomes or []) if o.email
        }

        net = Network(
            height="750px",
            width="100%",
            bgcolor="#1a202c",
            font_color="#e2e8f0",
            directed=True,
            notebook=False
        )
        net.set_options(NETWORK_OPTIONS)

        nx_graph = self.graph.nx_graph
        for node_id, attrs in nx_graph.nodes(data=True):
            kind = attrs.get('kind', MemberKind.USER)
            label = attrs.get('name') or node_id
            color = NODE_COLORS.get(kind, "#a0aec0")
            title = f"{kind.value}: {label}"
            size = 18

            if kind == MemberKind.GROUP:
                shape = "box"
                if attrs.get('is_seed'):
                    color = SEED_COLOR
                    size = 28
            else:
                shape = "dot"
                record = attrs.get('record')
                outcome = None
                if record is not None and record.email:
                    outcome = status_by_email.get(record.email.lower())
                    title += f"\n{record.email}"
                if outcome is not None:
                    color = STATUS_COLORS[outcome.status]
                    title += f"\n{outcome.status.value}"
                    if outcome.breach_count:
                        title += f" ({outcome.breach_count} breaches)"
                        size = 18 + min(outcome.breach_count, 10) * 2

            net.add_node(
                node_id,
                label=label,
                title=title,
                color={
                    "background": color,
                    "border": color,
                    "highlight": {"background": "#ecc94b", "border": "#d69e2e"}
                },
                size=size,
                shape=shape
            )

        for source, target, attrs in nx_graph.edges(data=True):
            net.add_edge(
                source,
                target,
                title=attrs.get('edge_type', 'MemberOf'),
                color={"color": "#718096", "highlight": "#ecc94b"},
                width=1.5,
                arrows="to"
            )

        output_path = self.output_dir / filename
        net.save_graph(str(output_path))
        return str(output_path)
