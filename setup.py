"""Install the restaurant accounts service."""

from setuptools import setup, find_packages

setup(
    name='restaurant-accounts',
    version='1.0.0',
    packages=find_packages(exclude=['*tests*']),
    py_modules=['wsgi', 'create_user'],
    package_data={'accounts': ['templates/accounts/*.html']},
    include_package_data=True,
    install_requires=[
        "flask",
        "flask-sqlalchemy",
        "flask-wtf",
        "sqlalchemy",
        "wtforms",
        "email-validator",
        "werkzeug",
        "python-dateutil",
        "pytz",
        "pyjwt",
        "redis",
        "fakeredis",
        "retry",
        "python-json-logger",
        "click"
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis"
        ]
    },
    zip_safe=False
)
