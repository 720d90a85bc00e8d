import json
import os
from typing import Dict, Iterator, Optional

from utils.quiz_state import Question, Topic

BASE_PATH = os.path.join(os.path.dirname(__file__), "prompts")
CATALOG_FILE = "topics.json"

DEFAULT_TOPIC_ID = "default"


def question_from_dict(data: dict) -> Question:
    """Build a Question from the camelCase JSON shape used by the catalog and the LLM."""
    return Question(
        text=data["text"],
        options=tuple(data["options"]),
        correct_index=data["correctIndex"],
        explanation=data["explanation"],
    )


def _topic_from_dict(topic_id: str, data: dict) -> Topic:
    return Topic(
        id=topic_id,
        name=data["name"],
        syllabus_text=data["syllabus"],
        fallback=question_from_dict(data["fallback"]),
    )


class TopicCatalog:
    """Fixed syllabus catalog. Unknown ids resolve to the default topic."""

    def __init__(self, topics: Dict[str, Topic], default: Topic):
        self._topics = dict(topics)
        self.default = default

    def get(self, topic_id: Optional[str]) -> Topic:
        return self._topics.get(str(topic_id), self.default)

    def __contains__(self, topic_id) -> bool:
        return str(topic_id) in self._topics

    def __iter__(self) -> Iterator[Topic]:
        return iter(self._topics.values())

    def __len__(self) -> int:
        return len(self._topics)


def load_topic_catalog(path: Optional[str] = None) -> TopicCatalog:
    """
    Load the fixed topic catalog (id, name, syllabus, fallback question)
    from prompts/topics.json. A broken file is fatal at startup.
    """
    file_path = path or os.path.join(BASE_PATH, CATALOG_FILE)
    with open(file_path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    topics = {
        str(topic_id): _topic_from_dict(str(topic_id), data)
        for topic_id, data in raw.get("topics", {}).items()
    }
    default = _topic_from_dict(DEFAULT_TOPIC_ID, raw["default"])
    return TopicCatalog(topics, default)
