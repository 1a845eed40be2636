import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed25519, rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from helpers import make_cert, remac


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def dsa_key():
    return dsa.generate_private_key(key_size=1024)


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec384_key():
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def ec521_key():
    return ec.generate_private_key(ec.SECP521R1())


@pytest.fixture(scope="session")
def k1_key():
    # a curve missing from the size table
    return ec.generate_private_key(ec.SECP256K1())


@pytest.fixture(scope="session")
def ed_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session", params=["rsa", "dsa", "ec"])
def any_key(request, rsa_key, dsa_key, ec_key):
    return {"rsa": rsa_key, "dsa": dsa_key, "ec": ec_key}[request.param]


@pytest.fixture(scope="session")
def rsa_cert(rsa_key):
    return make_cert(rsa_key, "leaf.example.com")


@pytest.fixture(scope="session")
def ca_chain(ec_key, ec384_key):
    root = make_cert(ec384_key, "Example Root CA")
    intermediate = make_cert(ec_key, "Example Intermediate CA", ec384_key, root.subject)
    return [intermediate, root]


@pytest.fixture(scope="session")
def p12_secret(rsa_key, rsa_cert, ca_chain):
    """Archive protected with the password 'secret'."""
    return pkcs12.serialize_key_and_certificates(
        b"leaf", rsa_key, rsa_cert, ca_chain,
        serialization.BestAvailableEncryption(b"secret")
    )


@pytest.fixture(scope="session")
def p12_open(rsa_key, rsa_cert, ca_chain):
    """Unencrypted archive, MAC keyed by the absent password."""
    return remac(pkcs12.serialize_key_and_certificates(
        b"leaf", rsa_key, rsa_cert, ca_chain, serialization.NoEncryption()
    ), None)
