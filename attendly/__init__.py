"""Attendly — attendance and leave management service."""
