from assassin import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import uuid


def _new_game_id():
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': str(self.id),
            'username': self.username,
        }


class Player(db.Model):
    """One roster entry: a user taking part in a game."""
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(32), db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)  # roster order
    target_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    eliminated = db.Column(db.Boolean, default=False, nullable=False)
    eliminated_order = db.Column(db.Integer, nullable=True)
    game = db.relationship('Game', back_populates='players')
    user = db.relationship('User', foreign_keys=[user_id])


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(32), primary_key=True, default=_new_game_id)
    # Codes are only unique among games that are not completed
    code = db.Column(db.String(16), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    status = db.Column(db.String(16), default='lobby', nullable=False)  # lobby, active, completed
    start_time = db.Column(db.DateTime(timezone=True), nullable=True)
    winner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    version = db.Column(db.Integer, default=1, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    players = db.relationship(
        'Player',
        back_populates='game',
        order_by='Player.position',
        cascade='all, delete-orphan',
    )
