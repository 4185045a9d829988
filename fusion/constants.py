"""
Constantes centralizadas da aplicação.

Seções:
    - TASKS: Status, prioridades e colunas do quadro
    - CALENDAR: Tipos de evento
    - ROOMS: Rótulos de especialidades, modalidades, comodidades e equipamentos
    - SHARE: Textos do link público de salas
"""


# =============================================================================
# TASKS
# =============================================================================

TASK_STATUS_LABELS = {
    "pending": "Pendente",
    "working": "Em andamento",
    "stuck": "Parado",
    "done": "Concluído",
}

TASK_PRIORITY_LABELS = {
    "high": "Alta",
    "medium": "Média",
    "low": "Baixa",
}

# Ordem das colunas do kanban
KANBAN_COLUMNS = ("pending", "working", "stuck", "done")


# =============================================================================
# CALENDAR
# =============================================================================

EVENT_TYPE_LABELS = {
    "reuniao": "Reunião",
    "evento": "Evento",
    "saude": "Saúde",
}


# =============================================================================
# ROOMS
# =============================================================================

SPECIALTY_LABELS = {
    "psicologia": "Psicologia",
    "nutricao": "Nutrição",
    "dermatologia": "Dermatologia",
    "estetica": "Estética",
    "fisioterapia": "Fisioterapia",
    "medicina": "Medicina",
    "odontologia": "Odontologia",
    "fonoaudiologia": "Fonoaudiologia",
}

MODALITY_LABELS = {
    "hourly": "Por Hora",
    "shift": "Por Turno",
    "fixed": "Fixo Mensal",
}

NEIGHBORHOODS = [
    "Todos",
    "Jardins",
    "Moema",
    "Vila Nova Conceição",
    "Pinheiros",
    "Paulista",
    "Itaim Bibi",
    "Brooklin",
]

AMENITY_LABELS = {
    "ar-condicionado": "Ar Condicionado",
    "wifi": "Wi-Fi",
    "recepcionista": "Recepcionista",
    "estacionamento": "Estacionamento",
    "copa": "Copa",
    "acessibilidade": "Acessibilidade",
    "vestiario": "Vestiário",
}

EQUIPMENT_LABELS = {
    "maca": "Maca",
    "pia": "Pia/Lavabo",
    "autoclave": "Autoclave",
    "laser": "Laser",
    "eletrocauterio": "Eletrocautério",
    "luz-pulsada": "Luz Pulsada",
    "mesa": "Mesa/Escrivaninha",
    "poltrona": "Poltrona",
    "som-ambiente": "Som Ambiente",
    "bolas-pilates": "Bolas de Pilates",
    "faixas-elasticas": "Faixas Elásticas",
    "espelho": "Espelho Grande",
    "cadeira-odontologica": "Cadeira Odontológica",
    "raio-x": "Raio-X",
    "compressor": "Compressor",
    "esfigmomanometro": "Esfigmomanômetro",
    "balanca": "Balança",
    "radiofrequencia": "Radiofrequência",
    "criolipolise": "Criolipólise",
}

# Faixa padrão do filtro de preço por hora
DEFAULT_PRICE_RANGE = (0, 300)


# =============================================================================
# SHARE
# =============================================================================

WHATSAPP_CONTACT_TEMPLATE = "Olá, vi a sala {name} no Fusion e gostaria de mais informações."

WHATSAPP_SHARE_TEMPLATE = (
    "🏥 *Olha essa sala que encontrei no Fusion!*\n"
    "*{name}* em {neighborhood}\n\n"
    "📸 Veja as fotos e detalhes aqui:\n"
    "{url}"
)
