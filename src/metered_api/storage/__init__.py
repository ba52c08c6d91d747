"""Credential, item and usage storage backends."""
