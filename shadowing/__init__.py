"""
Shadowing - spaced-repetition scheduler for daily speaking practice.

Decides which sentences a user practices each day, records practice
outcomes, advances review schedules and adjusts the user's level.
"""
