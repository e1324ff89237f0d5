"""Slika: server-side API for a media board with likes, saves, comments and follows."""
