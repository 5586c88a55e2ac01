"""
Services module for external API integrations of the AI receptionist.

Key components:
- grounding: Post-call analysis that cross-checks the caller's claims with
  Google Search through a grounded Gemini request, returning a Bangla summary
  and the cited web sources.

Usage examples:
```python
from receptionist.services.grounding import analyzer

result = await analyzer.analyze(transcript)
if result:
    print(result.summary)
    for source in result.sources:
        print(source.title, source.uri)
```
"""

# Services module initialization
