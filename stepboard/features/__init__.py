"""
Stepboard feature packages.

- google_fit: OAuth token refresh and step aggregation client
- participants: participant records and the sign-in upsert
- steps: synced metrics and the daily-steps cache
- sync: batch and background step sync
- leaderboard: ranked read path and filters
"""
