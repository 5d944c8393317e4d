"""
Recursive deep web research: query planning, relevance filtering, learning
extraction and report synthesis.

Import `DeepSearchAgent` directly from here:

```python
from deep_search import DeepSearchAgent

agent = DeepSearchAgent()
report = agent.invoke("state of solid-state batteries", depth=2, breadth=4)
```
"""

from .collaborators import SearchFilters  # noqa: F401
from .config import ResearchConfig  # noqa: F401
from .engine import ResearchEngine  # noqa: F401
from .research_agent import DeepSearchAgent  # noqa: F401

__all__ = ["DeepSearchAgent", "ResearchConfig", "ResearchEngine", "SearchFilters"]
