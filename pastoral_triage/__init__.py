"""
Pastoral Care Email Triage.

An email ingestion pipeline that:
- Fetches recent mail for a monitored mailbox (Microsoft Graph)
- Filters out senders outside the allow-list and automated system senders
- Classifies each message as a possible student support case (Gemini AI,
  with a keyword heuristic as low-confidence fallback)
- Stores one triage item per source message for review in the dashboard
"""

__version__ = "1.0.0"
