"""
Script para criar o usuário admin inicial do FoodMax
Execute: python scripts/create_admin.py
Variáveis opcionais: ADMIN_EMAIL, ADMIN_PASSWORD
"""
import sys
import os

# Adiciona o diretório raiz ao path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from foodmax.database import SessionLocal
from foodmax.models import RoleUsuario, Usuario
from foodmax.security import get_password_hash
from foodmax.services.transicoes import agora


def create_admin():
    db = SessionLocal()

    email = os.getenv("ADMIN_EMAIL", "admin@foodmax.com.br")
    senha = os.getenv("ADMIN_PASSWORD", "Admin@123")

    try:
        # Verifica se já existe um admin
        admin = db.query(Usuario).filter(Usuario.role == RoleUsuario.ADMIN).first()

        if admin:
            print(f"✓ Admin já existe: {admin.email}")
            return

        admin = Usuario(
            email=email,
            senha_hash=get_password_hash(senha),
            role=RoleUsuario.ADMIN,
            ativo=True,
            onboarding=True,
            data_pagamento=agora(),
        )

        db.add(admin)
        db.commit()

        print("✓ Admin criado com sucesso!")
        print(f"  Email: {admin.email}")
        print("\n⚠️  IMPORTANTE: Altere a senha após o primeiro login!")

    except Exception as e:
        print(f"✗ Erro ao criar admin: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
