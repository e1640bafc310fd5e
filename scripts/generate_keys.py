"""
Génère la paire de clés ES256 utilisée pour signer les JWT.

Usage:
    python scripts/generate_keys.py [--output-dir keys]

Génère:
    keys/jwt_private_key.pem  (JWT_PRIVATE_KEY_PATH)
    keys/jwt_public_key.pem   (JWT_PUBLIC_KEY_PATH)

En test/développement, ALGORITHM=HS256 + JWT_SECRET_KEY dispense de ces fichiers.
"""

import argparse
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def generate_es256_keypair(output_dir: Path, overwrite: bool = False) -> tuple[Path, Path]:
    """Génère une paire de clés ECDSA P-256 (ES256) au format PEM."""
    private_key_path = output_dir / "jwt_private_key.pem"
    public_key_path = output_dir / "jwt_public_key.pem"
    if private_key_path.exists() and not overwrite:
        raise FileExistsError(f"{private_key_path} existe déjà (utiliser --force)")

    private_key = ec.generate_private_key(ec.SECP256R1())

    private_key_path.write_bytes(private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    private_key_path.chmod(0o600)

    public_key_path.write_bytes(private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ))
    return private_key_path, public_key_path


def main():
    parser = argparse.ArgumentParser(description="Génère les clés JWT ES256")
    parser.add_argument("--output-dir", default="keys", type=Path)
    parser.add_argument("--force", action="store_true", help="Écrase les clés existantes")
    args = parser.parse_args()

    args.output_dir.mkdir(exist_ok=True)
    private_path, public_path = generate_es256_keypair(args.output_dir, overwrite=args.force)

    print("🔐 Paire de clés ES256 générée")
    print(f"✅ Clé privée JWT : {private_path}")
    print(f"✅ Clé publique JWT : {public_path}")
    print("\n⚠️  Ne jamais committer le dossier keys/ (ajouter à .gitignore)")


if __name__ == "__main__":
    main()
