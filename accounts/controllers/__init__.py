"""Request controllers for the restaurant accounts application."""

from . import account, authentication, pages, registration
