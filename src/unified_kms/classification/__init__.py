"""
Content classification.

```python
from unified_kms.classification import ContentClassifier

result = ContentClassifier().classify("Fixed bug in auth middleware")
result.category, result.confidence, result.tags
```
"""

from unified_kms.classification.classifier import (
    Classification,
    ContentClassifier,
    LinkSuggestion,
)
from unified_kms.classification.patterns import CATEGORY_PATTERNS, PatternRule

__all__ = [
    "CATEGORY_PATTERNS",
    "Classification",
    "ContentClassifier",
    "LinkSuggestion",
    "PatternRule",
]
