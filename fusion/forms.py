"""WTForms definitions used to validate JSON payloads and the login page.

API forms are built from the request JSON with :func:`json_form`, which
turns the payload into form data and disables CSRF for token-less JSON
calls. Field names follow the camelCase keys of the JSON API.
"""

from typing import Any, Mapping

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    BooleanField,
    DateField,
    FloatField,
    PasswordField,
    SelectField,
    SelectMultipleField,
    StringField,
    SubmitField,
    TextAreaField,
)
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    ValidationError,
)

from fusion.constants import (
    EVENT_TYPE_LABELS,
    MODALITY_LABELS,
    TASK_PRIORITY_LABELS,
    TASK_STATUS_LABELS,
)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%d/%m/%Y",
]


def payload_to_formdata(payload: Mapping[str, Any]) -> MultiDict:
    """Flatten a JSON payload into ``MultiDict`` form data.

    Empty values are dropped so optional fields stay empty, lists become
    repeated keys (objects contribute their ``id``), nested objects become
    camelCase keys (``host.name`` -> ``hostName``) and booleans are only
    sent when true.
    """
    items = []

    def _add(key, value):
        if value is None or value == "" or value is False:
            return
        if value is True:
            items.append((key, "y"))
        elif isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                _add(f"{key}{sub_key[:1].upper()}{sub_key[1:]}", sub_value)
        elif isinstance(value, (list, tuple)):
            for item in value:
                if isinstance(item, Mapping):
                    item = item.get("id")
                if item is not None and item != "":
                    items.append((key, str(item)))
        else:
            items.append((key, str(value)))

    for key, value in (payload or {}).items():
        _add(key, value)
    return MultiDict(items)


def json_form(form_class, payload: Mapping[str, Any], **kwargs):
    """Instantiate ``form_class`` from a JSON payload with CSRF disabled."""
    return form_class(formdata=payload_to_formdata(payload), meta={"csrf": False}, **kwargs)


def form_errors(form) -> dict:
    return {name: list(errors) for name, errors in form.errors.items()}


class LoginForm(FlaskForm):
    """Formulário de login."""

    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Senha', validators=[DataRequired()])
    remember_me = BooleanField('Lembrar-me')
    submit = SubmitField('Entrar')


class TaskForm(FlaskForm):
    """Criação de tarefa: nome, status, prioridade, prazo e ao menos um responsável."""

    name = StringField("Nome", validators=[DataRequired(message="Informe o nome da tarefa.")])
    description = TextAreaField("Descrição", validators=[Optional()])
    status = SelectField(
        "Status",
        choices=list(TASK_STATUS_LABELS.items()),
        default="pending",
        validators=[DataRequired()],
    )
    priority = SelectField(
        "Prioridade",
        choices=list(TASK_PRIORITY_LABELS.items()),
        default="medium",
        validators=[DataRequired()],
    )
    dueDate = DateField("Prazo", format=DATE_FORMATS, validators=[DataRequired(message="Informe o prazo.")])
    teamId = StringField("Setor", validators=[DataRequired(message="Selecione o setor ou Geral.")])
    owners = SelectMultipleField(
        "Responsáveis",
        choices=[],
        validate_choice=False,
        validators=[Length(min=1, message="Selecione ao menos um responsável.")],
    )


class TaskUpdateForm(FlaskForm):
    """Edição parcial; apenas valida o formato do que foi enviado."""

    name = StringField("Nome", validators=[Optional()])
    description = TextAreaField("Descrição", validators=[Optional()])
    priority = StringField(
        "Prioridade", validators=[Optional(), AnyOf(list(TASK_PRIORITY_LABELS))]
    )
    dueDate = DateField("Prazo", format=DATE_FORMATS, validators=[Optional()])
    teamId = StringField("Setor", validators=[Optional()])


class MessageForm(FlaskForm):
    content = TextAreaField("Mensagem")
    type = SelectField(
        "Tipo",
        choices=[("text", "Texto"), ("audio", "Áudio"), ("image", "Imagem")],
        default="text",
    )
    mediaUrl = StringField("Mídia", validators=[Optional()])

    def validate_content(self, field):
        if self.type.data == "text" and not (field.data or "").strip():
            raise ValidationError("Digite uma mensagem.")

    def validate_mediaUrl(self, field):
        if self.type.data in ("audio", "image") and not field.data:
            raise ValidationError("Envie o arquivo antes da mensagem.")


class TeamForm(FlaskForm):
    name = StringField("Nome", validators=[DataRequired(message="Informe o nome da equipe.")])
    description = TextAreaField("Descrição", validators=[Optional()])


class MemberForm(FlaskForm):
    """Cadastro de membro com senha de acesso."""

    name = StringField("Nome", validators=[DataRequired()])
    email = StringField("Email", validators=[DataRequired(), Email(message="E-mail inválido.")])
    password = PasswordField(
        "Senha",
        validators=[DataRequired(), Length(min=6, message="A senha deve ter pelo menos 6 caracteres.")],
    )
    role = SelectField(
        "Função",
        choices=[("membro", "Membro"), ("gestor", "Gestor")],
        default="membro",
    )
    teamId = StringField("Equipe", validators=[Optional()])


class ProfileForm(FlaskForm):
    name = StringField("Nome", validators=[Optional(), Length(min=2)])
    avatarUrl = StringField("Avatar", validators=[Optional()])


class EventForm(FlaskForm):
    title = StringField("Título", validators=[DataRequired(message="Informe o título.")])
    type = SelectField("Tipo", choices=list(EVENT_TYPE_LABELS.items()), default="reuniao")
    date = DateField("Data", format=DATE_FORMATS, validators=[DataRequired(message="Informe a data.")])
    startTime = StringField("Início", validators=[Optional(), Length(max=5)])
    endTime = StringField("Fim", validators=[Optional(), Length(max=5)])
    description = TextAreaField("Descrição", validators=[Optional()])
    location = StringField("Local", validators=[Optional()])
    teamId = StringField("Equipe", validators=[Optional()])
    isGeneral = BooleanField("Geral")
    participants = SelectMultipleField("Participantes", choices=[], validate_choice=False)


class EventUpdateForm(FlaskForm):
    """Edição parcial de evento; valida apenas o que foi enviado."""

    title = StringField("Título", validators=[Optional()])
    type = StringField("Tipo", validators=[Optional(), AnyOf(list(EVENT_TYPE_LABELS), message="Tipo de evento inválido.")])
    date = DateField("Data", format=DATE_FORMATS, validators=[Optional()])
    startTime = StringField("Início", validators=[Optional(), Length(max=5)])
    endTime = StringField("Fim", validators=[Optional(), Length(max=5)])
    teamId = StringField("Equipe", validators=[Optional()])


class RoomForm(FlaskForm):
    """Cadastro e edição de sala.

    Pass ``require_images=True`` when creating: a new room needs at least
    one photo.
    """

    name = StringField("Nome", validators=[DataRequired(), Length(min=3, message="Nome muito curto.")])
    description = TextAreaField(
        "Descrição", validators=[DataRequired(), Length(min=10, message="Descreva a sala com mais detalhes.")]
    )
    neighborhood = StringField("Bairro", validators=[DataRequired(), Length(min=2)])
    address = StringField("Endereço", validators=[DataRequired(), Length(min=5)])
    referencePoint = StringField("Ponto de referência", validators=[Optional()])
    size = FloatField("Tamanho (m²)", validators=[InputRequired(), NumberRange(min=1)])
    modalities = SelectMultipleField(
        "Modalidades",
        choices=list(MODALITY_LABELS.items()),
        validators=[Length(min=1, message="Selecione ao menos uma modalidade.")],
    )
    specialties = SelectMultipleField(
        "Especialidades",
        choices=[],
        validate_choice=False,
        validators=[Length(min=1, message="Selecione ao menos uma especialidade.")],
    )
    amenities = SelectMultipleField("Comodidades", choices=[], validate_choice=False)
    equipment = SelectMultipleField("Equipamentos", choices=[], validate_choice=False)
    images = SelectMultipleField("Fotos", choices=[], validate_choice=False)
    pricePerHour = FloatField("Preço por hora", validators=[Optional(), NumberRange(min=0)])
    pricePerShift = FloatField("Preço por turno", validators=[Optional(), NumberRange(min=0)])
    priceFixed = FloatField("Preço fixo mensal", validators=[Optional(), NumberRange(min=0)])
    nightShiftAvailable = BooleanField("Turno noturno")
    weekendAvailable = BooleanField("Fins de semana")
    hostName = StringField("Responsável", validators=[DataRequired(), Length(min=2)])
    hostPhone = StringField("Telefone", validators=[DataRequired(), Length(min=10)])

    def __init__(self, *args, require_images: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.require_images = require_images

    def validate_images(self, field):
        if self.require_images and not field.data:
            raise ValidationError("Adicione pelo menos uma foto.")
