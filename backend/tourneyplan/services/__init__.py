"""
Services Layer

Tournament logic that:
- Accepts domain inputs (TournamentConfig, Team/Match records, TournamentState)
- Returns new domain values instead of mutating its inputs
- Does NOT depend on HTTP request/response objects
- Touches the database only in tournament_store
"""
