import argparse
import sys
from grpcrnd import __version__
from grpcrnd.constants import APP_NAME, EXIT_OK, EXIT_FAILURE
from grpcrnd.executer.main import main as executer
from grpcrnd.executer.helper import helper

CALL_EXAMPLES = """
* call
grpcrnd call localhost:8888 test.Test.Echo

* call with header
grpcrnd call localhost:8888 test.Test.Echo -H 'UserAgent: grpcrand'
"""


def _add_connection_flags(parser):
    parser.add_argument("addr", help="server address, host:port")
    parser.add_argument("--insecure", action="store_true", help="use a plaintext connection")
    parser.add_argument("--cacert", help="CA certificate file used to verify the server")
    parser.add_argument("--cert", help="client certificate file")
    parser.add_argument("--key", help="client private key file")
    parser.add_argument("-l", "--log", dest="uselog", action="store_true",
                        help="specify if you want to output to logs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="gRPC client sending randomly generated requests")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    call = subparsers.add_parser(
        "call",
        help="call gRPC method using generated random parameter",
        epilog=CALL_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_connection_flags(call)
    call.add_argument("method", help="fully qualified method, e.g. test.Test.Echo")
    call.add_argument("-H", "--header", dest="headers", action="append", default=[],
                      help="send with header, 'Key: Value' (repeatable)")
    call.add_argument("--timeout", type=float, default=None, help="call deadline in seconds")

    services = subparsers.add_parser("list", help="list services exposed through reflection")
    _add_connection_flags(services)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    creds = {
        'ca_certificate': args.cacert,
        'client_certificate': args.cert,
        'client_key': args.key,
    }
    try:
        if args.command == "call":
            executer(args.addr, creds, args.insecure, timeout=args.timeout).call(args.method, args.headers, args.uselog)
        else:
            executer(args.addr, creds, args.insecure).list_services(args.uselog)
        return EXIT_OK
    except Exception as e:
        helper().log(function_name='main', args=[argv], exception=e)
        print(f"Error: failed to {args.command}: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
