"""
Restaurant accounts service.

The accounts service is a Flask application that provides the browser-facing
interfaces for account registration, authentication and the personal account
page of the restaurant site. It owns the user, role and profile tables of the
restaurant database.

Context
-------
Customers create an account with a username, an e-mail address and their
name. Every self-registered account is granted the ``customer`` role, and is
linked to a profile record that the rest of the restaurant site uses for
comments and table reservations.

When a user logs in, they are issued a session key in the form of a secure
cookie. The session itself (user, roles, client address and expiry) is kept
in a distributed key-value store, so that other services can resolve the
cookie on subsequent requests. Failed logins can count towards a temporary
lockout of the account; see :mod:`accounts.config`.

Controllers in :mod:`accounts.controllers` never read request globals: the
routes build an explicit :class:`.domain.RequestContext` and controllers call
:func:`.authorization.check` before doing any work.
"""
