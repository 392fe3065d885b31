import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///assassin.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Minimum roster size before the owner may start a game
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '3'))
    # Length of generated join codes
    JOIN_CODE_LENGTH = int(os.environ.get('JOIN_CODE_LENGTH', '5'))
    # Attempts at a conflicting game commit before answering 409
    COMMIT_MAX_RETRIES = int(os.environ.get('COMMIT_MAX_RETRIES', '5'))
