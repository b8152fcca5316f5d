"""Limiter services: key codec, window tracker, decision policy, facade."""
