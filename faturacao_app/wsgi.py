# faturacao_app/wsgi.py
# -*- coding: utf-8 -*-
from faturacao_app import create_app

app = create_app()
