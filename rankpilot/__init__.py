"""
RankPilot: single-page SEO audits with metered, quota-gated job processing.
"""

__version__ = "1.0.0"
