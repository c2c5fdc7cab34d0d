"""Chirp - microblogging backend with account credentials and a follow feed."""
