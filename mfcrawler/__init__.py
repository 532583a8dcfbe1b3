"""mfcrawler core package.

Scrapes an authenticated household-finance service across its account
groups:
- parsers: normalization of yen amounts, 万/億 units, percentages and dates
- browser: Playwright session with a fixed fingerprint and persisted login
- refresh: backend account refresh trigger and poller
- groups: group listing and the revertible GroupScope
- scrapers: one scraper per service view
- scraper: two-phase crawl orchestration
- mutations: transaction category updates
- credentials: secret resolution for the external login flow
- validator: ConsistencyMonitor for cross-group invariants
- logger: structured JSON logging configuration
- exceptions: custom exception hierarchy
"""

__version__ = "1.0.0"
