"""
Concierge - Conversational nutrition shopping assistant.

Components:
- Onboarding: intake interview (see the `onboarding` package)
- Ranking: relevance scoring of catalog search results
- Combos: curated product bundles matched to a profile or a recommendation
"""

__version__ = "1.0.0"
