"""
Registro centralizado de blueprints da aplicacao.

Blueprints Disponiveis:
    - health_bp: Health check (/ping)
    - auth_bp: Login, logout e usuario atual
    - tasks_bp: API de tarefas e mensagens
    - dashboard_bp: Quadros otimistas (tabela, kanban, calendario, minhas tarefas)
    - notifications_bp: Caixa de entrada
    - realtime_bp: Stream SSE de alteracoes
    - teams_bp: Equipes, membros e perfil
    - calendar_bp: Eventos do calendario
    - rooms_bp: Catalogo de salas
    - uploads_bp: Upload e download de anexos
    - share_bp: Pagina publica de compartilhamento de sala

Uso:
    from fusion.controllers.routes.blueprints import register_all_blueprints
    register_all_blueprints(app)
"""

from flask import Flask

from fusion import csrf


def register_all_blueprints(app: Flask) -> None:
    """
    Registra todos os blueprints na aplicacao Flask.

    Blueprints da API JSON ficam isentos de CSRF: as chamadas usam a sessao
    do Flask-Login e nao carregam token de formulario.
    """
    # Health - keep-alive de sessao (/ping)
    from fusion.controllers.routes.blueprints.health import health_bp
    app.register_blueprint(health_bp)

    # Auth - /login, /logout, /api/auth/login, /api/me
    from fusion.controllers.routes.blueprints.auth import auth_bp
    app.register_blueprint(auth_bp)

    # Share - pagina publica da sala (/share/room/<id>)
    from fusion.controllers.routes.blueprints.share import share_bp
    app.register_blueprint(share_bp)

    # Uploads - /api/uploads e /uploads/<name>
    from fusion.controllers.routes.blueprints.uploads import uploads_bp
    csrf.exempt(uploads_bp)
    app.register_blueprint(uploads_bp)

    # Realtime - /realtime/stream
    from fusion.controllers.routes.blueprints.realtime import realtime_bp
    app.register_blueprint(realtime_bp)

    from fusion.controllers.routes.blueprints.tasks import tasks_bp
    from fusion.controllers.routes.blueprints.dashboard import dashboard_bp
    from fusion.controllers.routes.blueprints.notifications import notifications_bp
    from fusion.controllers.routes.blueprints.teams import teams_bp
    from fusion.controllers.routes.blueprints.calendar import calendar_bp
    from fusion.controllers.routes.blueprints.rooms import rooms_bp

    for blueprint in (tasks_bp, dashboard_bp, notifications_bp, teams_bp, calendar_bp, rooms_bp):
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint)
