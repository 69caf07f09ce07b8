"""
Persistence — durable storage of activity records.

- codec: one exchange ⇄ bytes, with legacy fallback
- ActivityRepository: aiosqlite tables for clients and activities
"""
