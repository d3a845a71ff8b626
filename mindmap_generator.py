"""
Mind Map Generator

Builds a radial mind map (nodes with canvas coordinates plus connections)
from study text. Bedrock is asked for the structure first; the fallback lays
out a main node, up to four primary branches and a few secondary branches.
"""

import logging
import math
from typing import Dict, List, Optional

from bedrock_client import AIGenerationError, BedrockService, bedrock_service, extract_json
from text_heuristics import (
    COMMON_WORDS,
    STOP_WORDS,
    UNIMPORTANT_WORDS,
    extract_main_topic,
    normalize_words,
    split_sentences,
)

logger = logging.getLogger(__name__)

CENTER_X = 300
CENTER_Y = 150
NODE_HALF_WIDTH = 64
NODE_HALF_HEIGHT = 32
MIN_X, MAX_X = 50, 650
MIN_Y, MAX_Y = 50, 300

MINDMAP_PROMPT = """Please analyze the following text and create a mind map structure.

Requirements:
- Extract the main topic and key concepts
- Organize concepts into hierarchical levels (0-5)
- Create relationships between concepts
- Generate a JSON structure for visualization

Return as JSON:
{{
  "title": "Main topic title",
  "nodes": [
    {{
      "id": "unique_id",
      "text": "concept text",
      "x": 300,
      "y": 150,
      "level": 0,
      "parent": "parent_id",
      "children": ["child_id1", "child_id2"]
    }}
  ],
  "connections": [
    {{"from": "node_id_1", "to": "node_id_2"}}
  ]
}}

Text to analyze:
{text}"""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _place(origin_x: float, origin_y: float, angle_degrees: float, radius: float):
    """Top-left corner of a node centred on the ring point, kept on the canvas."""
    radians = math.radians(angle_degrees)
    x = origin_x + radius * math.cos(radians)
    y = origin_y + radius * math.sin(radians)
    return (
        _clamp(x - NODE_HALF_WIDTH, MIN_X, MAX_X),
        _clamp(y - NODE_HALF_HEIGHT, MIN_Y, MAX_Y),
    )


def extract_key_concepts(sentences: List[str], limit: int = 6) -> List[str]:
    concepts: List[str] = []
    for sentence in sentences:
        words = [
            w for w in normalize_words(sentence)
            if len(w) > 4 and w not in COMMON_WORDS and w not in STOP_WORDS and w not in UNIMPORTANT_WORDS
        ]
        meaningful = [w for w in words if len(w) > 5 or any(w in c for c in concepts)]
        concepts.extend(meaningful[:2])
    return list(dict.fromkeys(concepts))[:limit]


def extract_sub_concepts(sentences: List[str], parent: str, limit: int = 3) -> List[str]:
    parent = parent.lower()
    sub_concepts: List[str] = []
    for sentence in sentences:
        if parent not in sentence.lower():
            continue
        words = [
            w for w in normalize_words(sentence)
            if len(w) > 3 and w != parent and w not in COMMON_WORDS and w not in STOP_WORDS
        ]
        sub_concepts.extend(words[:2])
    return list(dict.fromkeys(sub_concepts))[:limit]


def generate_fallback_mindmap(text: str) -> Dict:
    """Lay out a two-level radial mind map from the text's sentences."""
    sentences = split_sentences(text, 15)
    if not sentences:
        return {"nodes": [], "connections": [], "title": "Empty Mind Map"}

    main_topic = extract_main_topic(text)
    nodes: List[Dict] = [{"id": "main", "label": main_topic, "x": CENTER_X, "y": CENTER_Y, "level": 0}]
    connections: List[Dict] = []

    level1_nodes = []
    for index, concept in enumerate(extract_key_concepts(sentences)[:4]):
        x, y = _place(CENTER_X, CENTER_Y, index * 90 - 135, 120)
        node = {"id": f"level1_{index}", "label": concept, "x": x, "y": y, "level": 1}
        level1_nodes.append(node)
        connections.append({"from": "main", "to": node["id"], "strength": 1})
    nodes.extend(level1_nodes)

    for parent_index, parent in enumerate(level1_nodes[:2]):
        for index, concept in enumerate(extract_sub_concepts(sentences, parent["label"])[:2]):
            x, y = _place(parent["x"] + NODE_HALF_WIDTH, parent["y"] + NODE_HALF_HEIGHT, index * 60 - 30, 80)
            node = {"id": f"level2_{parent_index}_{index}", "label": concept, "x": x, "y": y, "level": 2}
            connections.append({"from": parent["id"], "to": node["id"], "strength": 1})
            nodes.append(node)

    return {"nodes": nodes, "connections": connections, "title": main_topic}


def normalize_ai_mindmap(data: Dict) -> Dict:
    """Accept the model's node shape and expose every node with a ``label``."""
    if not isinstance(data, dict) or not isinstance(data.get("nodes"), list) or not data["nodes"]:
        raise AIGenerationError("AI response did not contain mind map nodes")

    nodes = []
    for index, raw in enumerate(data["nodes"]):
        raw = raw if isinstance(raw, dict) else {}
        node = {
            "id": str(raw.get("id") or f"node_{index}"),
            "label": raw.get("label") or raw.get("text") or f"Concept {index + 1}",
            "level": raw.get("level", 0 if index == 0 else 1),
            "x": raw.get("x", CENTER_X),
            "y": raw.get("y", CENTER_Y),
        }
        if raw.get("parent"):
            node["parent"] = raw["parent"]
        if raw.get("children"):
            node["children"] = raw["children"]
        nodes.append(node)

    connections = [
        {"from": c.get("from"), "to": c.get("to"), "strength": c.get("strength", 1)}
        for c in data.get("connections") or []
        if isinstance(c, dict) and c.get("from") and c.get("to")
    ]

    return {"nodes": nodes, "connections": connections, "title": data.get("title") or nodes[0]["label"]}


class MindMapGenerator:
    """Generate mind maps with Bedrock and a layout fallback"""

    def __init__(self, bedrock: Optional[BedrockService] = None):
        self.bedrock = bedrock or bedrock_service

    def generate_mindmap(self, text: str) -> Dict:
        try:
            mindmap = self.bedrock.invoke_with_fallback(
                MINDMAP_PROMPT.format(text=text),
                max_tokens=1500,
                temperature=0.3,
                parse=lambda raw: normalize_ai_mindmap(extract_json(raw, "object")),
            )
            logger.info("✅ AI mind map generation successful")
            return mindmap
        except AIGenerationError as e:
            logger.warning(f"⚠️ AI mind map generation failed, using fallback: {e}")
            return generate_fallback_mindmap(text)


# Global instance
mindmap_generator = MindMapGenerator()
