"""Restaurant database models."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, \
    Integer, String, Table, Text, text
from sqlalchemy.orm import relationship
from flask_sqlalchemy import SQLAlchemy

db: SQLAlchemy = SQLAlchemy()


user_roles = Table(
    'user_roles',
    db.metadata,
    Column('user_id', ForeignKey('users.id'), primary_key=True),
    Column('role_id', ForeignKey('roles.id'), primary_key=True),
)


class DBUser(db.Model):  # type: ignore
    """
    Login identity of a site user.

    Usernames and e-mail addresses are compared case-insensitively through
    the upper-cased ``normalized_*`` columns, which carry the uniqueness
    constraints.
    """

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    username = Column(String(256), nullable=False)
    normalized_username = Column(String(256), nullable=False, unique=True,
                                 index=True)
    email = Column(String(256), nullable=False)
    normalized_email = Column(String(256), nullable=False, unique=True,
                              index=True)
    password_hash = Column(String(255), nullable=False)
    lockout_enabled = Column(Boolean, nullable=False,
                             server_default=text('1'), default=True)
    lockout_end = Column(DateTime(timezone=True), nullable=True)
    access_failed_count = Column(Integer, nullable=False,
                                 server_default=text('0'), default=0)
    employee_id = Column(ForeignKey('employees.id'), nullable=False,
                         unique=True)

    employee = relationship('DBEmployee', uselist=False,
                            back_populates='user')
    roles = relationship('DBRole', secondary=user_roles, lazy='selectin')


class DBRole(db.Model):  # type: ignore
    __tablename__ = 'roles'

    id = Column(Integer, primary_key=True)
    name = Column(String(256), nullable=False)
    normalized_name = Column(String(256), nullable=False, unique=True)


class DBEmployee(db.Model):  # type: ignore
    """Profile of a site user. Created together with its :class:`.DBUser`."""

    __tablename__ = 'employees'

    id = Column(Integer, primary_key=True)
    first_name = Column(String(50))
    surname = Column(String(50))
    address = Column(String(255))
    date_of_birth = Column(Date)
    city = Column(String(100))
    phone = Column(String(32))
    email = Column(String(256))

    user = relationship('DBUser', uselist=False, back_populates='employee')
    comments = relationship('DBComment', back_populates='employee')
    reservations = relationship('DBReservation', back_populates='employee')


class DBRestaurant(db.Model):  # type: ignore
    __tablename__ = 'restaurants'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255))

    tables = relationship('DBTableRestaurant', back_populates='restaurant')


class DBTableRestaurant(db.Model):  # type: ignore
    __tablename__ = 'restaurant_tables'

    id = Column(Integer, primary_key=True)
    number = Column(Integer, nullable=False)
    seats = Column(Integer, nullable=False, server_default=text('2'))
    restaurant_id = Column(ForeignKey('restaurants.id'), nullable=False,
                           index=True)

    restaurant = relationship('DBRestaurant', back_populates='tables')


class DBComment(db.Model):  # type: ignore
    __tablename__ = 'comments'

    id = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)
    created = Column(DateTime(timezone=True))
    employee_id = Column(ForeignKey('employees.id'), nullable=False,
                         index=True)
    restaurant_id = Column(ForeignKey('restaurants.id'), nullable=False,
                           index=True)

    employee = relationship('DBEmployee', back_populates='comments')
    restaurant = relationship('DBRestaurant')


class DBReservation(db.Model):  # type: ignore
    __tablename__ = 'reservations'

    id = Column(Integer, primary_key=True)
    date = Column(DateTime(timezone=True), nullable=False)
    persons = Column(Integer, nullable=False, server_default=text('1'))
    employee_id = Column(ForeignKey('employees.id'), nullable=False,
                         index=True)
    table_id = Column(ForeignKey('restaurant_tables.id'), nullable=False,
                      index=True)

    employee = relationship('DBEmployee', back_populates='reservations')
    table = relationship('DBTableRestaurant')
