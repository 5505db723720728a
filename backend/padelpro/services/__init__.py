"""
Services Layer

Two kinds of modules live here:
- Engine modules (format_rules, fixture_*, standings, playoff_engine, rating,
  seeding, tournament_state) are pure: they read a TournamentSnapshot and
  return new values. No sessions, no I/O.
- tournament_service maps SQLModel rows to and from engine values and owns
  every database mutation.

Neither depends on HTTP request/response objects.
"""
