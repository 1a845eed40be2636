#
# normalize a key/cert/PKCS#12 file to DER and tell us what's in it
#
# Usage: certnorm [-opts] [file-name-or-stdin]
#

import argparse
import base64
import getpass
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from . import decoders, introspect, pem, pkcs12
from .errors import CertnormError
from .models import Certificate, KeyMaterial
from .password import CallbackPassword, FixedPassword, NoPassword
from .settings import MAX_INPUT_SIZE, Settings, configure_logging

logger = logging.getLogger("certnorm")

KINDS = ["private", "public", "cert", "pkcs12", "info", "pem"]


def _b64(der: bytes) -> str:
    return base64.b64encode(der).decode("ascii")


def _key_output(material: KeyMaterial) -> Dict[str, Any]:
    """Key as JSON-able dict."""
    if material.private:
        public_der = introspect.derive_public_from_private(material.der)
    else:
        public_der = material.der

    return {
        "private":  material.private,
        "type":     material.key_type.value,
        "bits":     introspect.bit_size_of(public_der),
        "der":      _b64(material.der),
    }


def _cert_output(cert: Certificate) -> Dict[str, Any]:
    """Certificate as JSON-able dict."""
    result: Dict[str, Any] = {"der": _b64(cert.der)}
    try:
        result["public_key"] = _key_output(cert.public_key())
    except CertnormError as e:
        logger.warning(f"Could not read certificate public key: {e}")
        result["public_key"] = {"error": str(e)}
    return result


def process(data: bytes, kind: str, password, settings: Settings) -> Dict[str, Any]:
    """Run the decoder for kind, returning a summary dict."""
    if kind == "private":
        material = decoders.decode_private_key(data, password, settings)
        return {"kind": kind, "key": _key_output(material), "_der": material.der}

    if kind == "public":
        material = decoders.decode_public_key(data, settings)
        return {"kind": kind, "key": _key_output(material), "_der": material.der}

    if kind == "cert":
        cert = decoders.decode_certificate(data, settings)
        return {"kind": kind, "certificate": _cert_output(cert), "_der": cert.der}

    if kind == "pkcs12":
        bundle = pkcs12.parse_pkcs12(data, password, settings)
        return {
            "kind":         kind,
            "certificate":  _cert_output(bundle.certificate) if bundle.certificate else None,
            "key":          _key_output(bundle.key) if bundle.key else None,
            "ca_chain":     [_cert_output(c) for c in bundle.ca_chain],
        }

    if kind == "info":
        material = decoders.decode_public_key(data, settings)
        return {"kind": kind, "info": introspect.key_info(material.der, settings)}

    block = pem.read_pem(data, settings)
    if block is None:
        return {"kind": kind, "pem": None}
    return {
        "kind": kind,
        "pem": {
            "label":        block.label,
            "description":  block.description,
            "header":       block.header,
            "encrypted":    block.encrypted,
            "body":         _b64(block.body),
        },
        "_der": block.body,
    }


def text_summary(rez: Dict[str, Any]) -> None:
    """Print a short human readable summary."""

    def key_line(key: Optional[Dict[str, Any]]) -> str:
        if not key:
            return "none"
        if "error" in key:
            return f"error: {key['error']}"
        private = "private" if key["private"] else "public"
        return f"{key['type'].upper()} {private} key, {key['bits']} bits"

    kind = rez["kind"]
    print(f"Kind: {kind}")

    if kind in ("private", "public"):
        print(f"  Key: {key_line(rez['key'])}")

    elif kind == "cert":
        print(f"  Certificate key: {key_line(rez['certificate']['public_key'])}")

    elif kind == "pkcs12":
        cert = rez["certificate"]
        print(f"  Certificate: {key_line(cert['public_key']) if cert else 'none'}")
        print(f"  Key: {key_line(rez['key'])}")
        print(f"  CA certificates: {len(rez['ca_chain'])}")
        for idx, ca in enumerate(rez["ca_chain"]):
            print(f"    - [{idx}] {key_line(ca['public_key'])}")

    elif kind == "info":
        info = rez["info"]
        print(f"  Type: {info['type'] if info else 'not a key'}")
        print(f"  Bits: {info['bits'] if info else '-'}")

    else:
        block = rez["pem"]
        if block is None:
            print("  No PEM section found")
        else:
            print(f"  {block['description']} ({block['label']})")
            print(f"  Encrypted: {block['encrypted']}")


#
# what goes on in CLI-land?
#
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns: Parsed arguments

    """

    parser = argparse.ArgumentParser(
        description="Normalize keys, certificates and PKCS#12 archives to DER"
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output"
    )
    parser.add_argument(
        "--der",
        metavar="OUT_FILE",
        help="Write the canonical DER to this file"
    )
    parser.add_argument(
        "file",
        metavar="FILE",
        nargs="?",
        default="-",
        help="File to normalize (default: stdin)"
    )
    parser.add_argument(
        "-k",
        "--kind",
        choices=KINDS,
        default="cert",
        help="What the file holds (default: cert)"
    )
    parser.add_argument(
        "--max_input_size",
        "-m",
        type=int,
        default=MAX_INPUT_SIZE,
        help="Maximum size in bytes of the input"
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)"
    )
    passwords = parser.add_mutually_exclusive_group()
    passwords.add_argument(
        "-p",
        "--password",
        help="Password for encrypted keys and PKCS#12 archives"
    )
    passwords.add_argument(
        "-P",
        "--ask-password",
        action="store_true",
        help="Prompt for the password if one is needed"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO
    )

    settings = Settings(
        verbose         = args.verbose,
        debug           = args.debug,
        max_input_size  = args.max_input_size,
    )
    configure_logging(settings)

    if args.password is not None:
        password = FixedPassword(args.password)
    elif args.ask_password:
        password = CallbackPassword(getpass.getpass)
    else:
        password = NoPassword()

    try:
        if args.file == "-":
            data = sys.stdin.buffer.read()
        else:
            with open(args.file, "rb") as f:
                data = f.read()
    except OSError as e:
        logger.error(f"Error reading {args.file}: {e}")
        return 1

    logger.info(f"Processing {args.file} as {args.kind}")

    try:
        result = process(data, args.kind, password, settings)
    except CertnormError as e:
        logger.error(f"Error processing {args.file}: {e}")
        return 1

    der = result.pop("_der", None)
    if args.der:
        if der is None:
            logger.error(f"No single DER object to write for --kind {args.kind}")
            return 1
        with open(args.der, "wb") as f:
            f.write(der)
        logger.info(f"Wrote {len(der)} bytes of DER to {args.der}")

    #
    # json => machine readable, text => summary
    #
    if args.output == "json":
        print(json.dumps(result, indent=2, default=str))
    else:
        text_summary(result)

    return 0


if __name__ == "__main__":
    sys.exit(main())
