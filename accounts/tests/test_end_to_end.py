"""End-to-end tests, via requests to the user interface."""

from unittest import TestCase, mock
from datetime import datetime, timedelta
import string

from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st
from http import HTTPStatus as status
from pytz import UTC

from accounts import authorization
from accounts.domain import UserRegistration
from accounts.factory import create_web_app
from accounts.services import database, identity
from accounts.services.database.models import DBUser


def _parse_cookies(cookie_data):
    cookies = {}
    for cdata in cookie_data:
        parts = cdata.split('; ')
        data = parts[0]
        key, value = data[:data.index('=')], data[data.index('=') + 1:]
        extra = {
            part[:part.index('=')]: part[part.index('=') + 1:]
            for part in parts[1:] if '=' in part
        }
        cookies[key] = dict(value=value, **extra)
    return cookies


class EndToEndTestCase(TestCase):
    """Runs the app against an in-memory database and a fake Redis."""

    @classmethod
    def setUpClass(self):
        self.secret = 'bazsecret'
        self.expiry = 500
        self.password = 'Secret1!'

    def setUp(self):
        self.ip_address = '10.1.2.3'
        self.environ_base = {'REMOTE_ADDR': self.ip_address}
        self.app = create_web_app({
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
            'REDIS_FAKE': True,
            'JWT_SECRET': self.secret,
            'SESSION_DURATION': self.expiry,
            'AUTH_SESSION_COOKIE_NAME': 'baz_session',
            'AUTH_SESSION_COOKIE_SECURE': False,
            'EXTERNAL_COOKIE_NAME': 'baz_external',
            'WTF_CSRF_ENABLED': False,
        })
        with self.app.app_context():
            database.drop_all()
            database.create_all()
            with database.transaction():
                result = identity.create_user(
                    UserRegistration(username='alice',
                                     email='alice@restaurant.org',
                                     first_name='Alice', surname='Smith'),
                    self.password
                )
                identity.add_to_role(result.user, authorization.CUSTOMER_ROLE)

    def tearDown(self):
        with self.app.app_context():
            database.drop_all()

    def _client(self):
        client = self.app.test_client()
        client.environ_base = self.environ_base
        return client

    def _login(self, client, return_url=None, **form_data):
        form_data.setdefault('login', 'alice')
        form_data.setdefault('password', self.password)
        path = '/login'
        if return_url is not None:
            path = f'/login?returnUrl={return_url}'
        return client.post(path, data=form_data)


class TestLoginLogoutRoutes(EndToEndTestCase):
    """Test logging in and logging out."""

    def test_get_login(self):
        """GET request to /login returns the login form."""
        response = self._client().get('/login?returnUrl=/restaurants/5')
        self.assertEqual(response.status_code, status.OK)
        self.assertEqual(response.content_type, 'text/html; charset=utf-8')
        self.assertIn(b'returnUrl=', response.data,
                      "The return URL is kept in the form action")
        self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
        self.assertEqual(response.headers['Content-Security-Policy'],
                         "frame-ancestors 'none'")

        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertIn('baz_external', cookies)
        self.assertEqual(cookies['baz_external']['Max-Age'], '0',
                         "The external login cookie is cleared")

    def test_post_login(self):
        """POST request to /login with valid form data returns redirect."""
        client = self._client()
        response = self._login(client, return_url='/restaurants/5')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/restaurants/5')

        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertIn('baz_session', cookies, "Sets cookie for authn session")
        self.assertNotIn('Max-Age', cookies['baz_session'],
                         "Lasts for the browser session")

        response = client.get('/account')
        self.assertEqual(response.status_code, status.OK,
                         "The session cookie authenticates later requests")
        self.assertIn(b'Alice', response.data)

    def test_post_login_remember_me(self):
        """The session cookie outlives the browser when asked."""
        response = self._login(self._client(), rememberMe='y')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        max_age = int(cookies['baz_session']['Max-Age'])
        self.assertGreater(max_age, self.expiry - 5)
        self.assertLessEqual(max_age, self.expiry)

    def test_post_login_with_bad_return_url(self):
        """The return URL points off site."""
        for bad_next_page in ['https://evil.example', '//evil.example']:
            response = self._login(self._client(), return_url=bad_next_page)
            self.assertEqual(response.status_code, status.SEE_OTHER)
            self.assertEqual(response.headers['Location'], '/restaurants')
            self.assertNotIn('evil', response.headers['Location'])

    def test_post_login_empty(self):
        """Empty POST request to /login."""
        client = self._client()
        response = client.post('/login', data={'login': 'alice',
                                               'password': ''})
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertNotIn('baz_session', cookies)

    def test_post_login_unknown_user(self):
        response = self._login(self._client(), login='bob')
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        self.assertIn(b'Check your username and password.', response.data)

    def test_post_login_wrong_password(self):
        response = self._login(self._client(), password='Wrong1!')
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        self.assertIn(b'Invalid login or password.', response.data)
        self.assertNotIn(b'Wrong1!', response.data,
                         "The password is not echoed back")

    @given(st.text())
    @settings(max_examples=50, deadline=None,
              suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_post_login_fuzz(self, fuzzed_pw):
        """Fuzz POST request to /login."""
        if fuzzed_pw == self.password:
            return
        response = self._login(self._client(), password=fuzzed_pw)
        self.assertEqual(response.status_code, status.BAD_REQUEST)

    def test_locked_out(self):
        """A user whose lockout has not ended is sent to the lockout page."""
        with self.app.app_context():
            with database.transaction() as session:
                db_user = session.query(DBUser) \
                    .filter(DBUser.username == 'alice').one()
                db_user.lockout_end = datetime.now(tz=UTC) \
                    + timedelta(minutes=5)
        response = self._login(self._client())
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/lockout')
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertNotIn('baz_session', cookies)

    def test_failures_lock_out(self):
        """With lockout on failure, the third bad password locks out."""
        self.app.config['LOCKOUT_ON_FAILURE'] = True
        self.app.config['LOCKOUT_MAX_FAILED_ATTEMPTS'] = 3
        client = self._client()
        for _ in range(2):
            response = self._login(client, password='Wrong1!')
            self.assertEqual(response.status_code, status.BAD_REQUEST)
        response = self._login(client, password='Wrong1!')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/lockout')

        response = client.get('/lockout')
        self.assertEqual(response.status_code, status.OK)

    def test_logout(self):
        """User logs in and then logs out."""
        client = self._client()
        self._login(client)

        response = client.get('/logout')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/restaurants')
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertEqual(cookies['baz_session']['Max-Age'], '0',
                         "Session cookie is expired")
        self.assertEqual(cookies['baz_external']['Max-Age'], '0',
                         "External cookie is expired")

        response = client.get('/account')
        self.assertEqual(response.status_code, status.SEE_OTHER,
                         "No longer logged in")

    def test_logout_reused_cookie(self):
        """A cookie kept after logging out no longer works."""
        client = self._client()
        response = self._login(client)
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        cookie = cookies['baz_session']['value']
        client.get('/logout')

        other = self._client()
        other.set_cookie('baz_session', cookie)
        response = other.get('/account')
        self.assertEqual(response.status_code, status.SEE_OTHER)

    def test_logout_anonymous(self):
        """Logging out without a session still succeeds."""
        response = self._client().get('/logout')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/restaurants')

    def test_logout_session_store_down(self):
        """The session store goes away while the user is logged in."""
        client = self._client()
        self._login(client)
        self.app.config['REDIS_FAKE_SERVER'].connected = False

        response = client.get('/logout')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/restaurants')
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertEqual(cookies['baz_session']['Max-Age'], '0',
                         "Session cookie is expired")

    def test_account_session_store_down(self):
        """Without the session store the user is treated as anonymous."""
        client = self._client()
        self._login(client)
        self.app.config['REDIS_FAKE_SERVER'].connected = False

        response = client.get('/account')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'],
                         '/login?returnUrl=/account')


class TestRegistrationRoutes(EndToEndTestCase):
    """Test registering a new account."""

    def _form(self, **overrides):
        form_data = {
            'username': 'carol',
            'email': 'carol@restaurant.org',
            'password': 'Secret1!',
            'firstName': 'Carol',
            'surname': 'White'
        }
        form_data.update(overrides)
        return form_data

    def test_get_register(self):
        response = self._client().get('/register')
        self.assertEqual(response.status_code, status.OK)
        self.assertIn(b'name="firstName"', response.data)

    def test_register_then_login(self):
        """A new customer registers and then logs in."""
        client = self._client()
        response = client.post('/register', data=self._form())
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'], '/restaurants')
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertNotIn('baz_session', cookies, "Registering does not log in")

        response = self._login(client, login='carol')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        response = client.get('/account')
        self.assertIn(b'Carol', response.data)

    def test_register_taken(self):
        """Both uniqueness problems are shown at once."""
        response = self._client().post('/register', data=self._form(
            username='ALICE', email='Alice@Restaurant.org'
        ))
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        self.assertIn(b'A user with this username already exists!',
                      response.data)
        self.assertIn(b'This email is already in use.', response.data)

    def test_register_weak_password(self):
        response = self._client().post('/register',
                                       data=self._form(password='secret'))
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        self.assertIn(b'Passwords must have at least one digit',
                      response.data)

    @given(st.text(alphabet=string.ascii_letters, min_size=1, max_size=12))
    @settings(max_examples=20, deadline=None,
              suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_register_case_insensitive(self, username):
        """A username differing only in case cannot be registered twice."""
        client = self._client()
        response = client.post('/register', data=self._form(
            username=username, email=f'{username}@restaurant.org'
        ))
        if username.upper() == 'ALICE':
            self.assertEqual(response.status_code, status.BAD_REQUEST)
            return
        self.assertEqual(response.status_code, status.SEE_OTHER)

        response = client.post('/register', data=self._form(
            username=username.swapcase(), email='other@restaurant.org'
        ))
        self.assertEqual(response.status_code, status.BAD_REQUEST)
        self.assertIn(b'A user with this username already exists!',
                      response.data)

        with self.app.app_context():
            with database.transaction() as session:
                db_users = session.query(DBUser) \
                    .filter(DBUser.username != 'alice').all()
                for db_user in db_users:
                    db_user.roles = []
                    session.delete(db_user)


class TestAccountRoutes(EndToEndTestCase):
    """Test the personal account page and the static pages."""

    def test_account_anonymous(self):
        response = self._client().get('/account')
        self.assertEqual(response.status_code, status.SEE_OTHER)
        self.assertEqual(response.headers['Location'],
                         '/login?returnUrl=/account')

    def test_account_after_login_redirect(self):
        """Logging in from the redirect returns to the account page."""
        client = self._client()
        location = client.get('/account').headers['Location']
        response = client.post(location, data={'login': 'alice',
                                               'password': self.password})
        self.assertEqual(response.headers['Location'], '/account')
        response = client.get('/account')
        self.assertEqual(response.status_code, status.OK)

    def test_static_pages(self):
        client = self._client()
        for path in ['/lockout', '/reset-password-confirmation',
                     '/access-denied']:
            response = client.get(path)
            self.assertEqual(response.status_code, status.OK, path)
            self.assertEqual(response.headers['X-Frame-Options'], 'DENY')

    def test_auth_status(self):
        response = self._client().get('/auth_status')
        self.assertEqual(response.status_code, status.OK)
        self.assertEqual(response.data, b'OK')

    def test_auth_status_database_down(self):
        """The health check fails when the database cannot be reached."""
        with mock.patch('accounts.routes.ui.database.is_available') as avail:
            avail.return_value = False
            response = self._client().get('/auth_status')
        self.assertEqual(response.status_code, status.SERVICE_UNAVAILABLE)
