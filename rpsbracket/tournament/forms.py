"""Forms for the tournament blueprint."""

from flask_wtf import FlaskForm
from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional

from rpsbracket.core.constants import (
    DISPLAY_NAME_MAX_LENGTH,
    GAME_CODE_LENGTH,
    TOURNAMENT_NAME_MAX_LENGTH,
)
from rpsbracket.match.moves import Move


class CreateTournamentForm(FlaskForm):
    """Form for opening a new lobby."""

    name = StringField(
        "Tournament Name",
        validators=[Optional(), Length(max=TOURNAMENT_NAME_MAX_LENGTH)],
    )
    display_name = StringField(
        "Display Name",
        validators=[DataRequired(), Length(max=DISPLAY_NAME_MAX_LENGTH)],
    )


class JoinTournamentForm(FlaskForm):
    """Form for joining a lobby by game code."""

    code = StringField(
        "Game Code",
        validators=[DataRequired(), Length(min=GAME_CODE_LENGTH, max=GAME_CODE_LENGTH)],
    )
    display_name = StringField(
        "Display Name",
        validators=[DataRequired(), Length(max=DISPLAY_NAME_MAX_LENGTH)],
    )


class MoveForm(FlaskForm):
    """Form for submitting a move."""

    move = SelectField(
        "Move",
        choices=[(m.value, m.value.capitalize()) for m in Move],
        validators=[DataRequired()],
    )
