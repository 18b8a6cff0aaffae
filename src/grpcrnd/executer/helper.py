import grpc
from typing import Dict, Any
import logging
import traceback
from grpcrnd.constants import LOG_FILE, LOG_LEVEL, LOG_FORMAT, OUTPUT_LOGGER

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "none": logging.CRITICAL + 1,
}


class helper:

    def __init__(self, log_to_console=False, log_file=LOG_FILE, log_level=LOG_LEVEL):
        self.logger = logging.getLogger("grpcrnd")
        self.logger.setLevel(LEVELS.get(log_level, logging.ERROR))
        self.logger.propagate = False

        formatter = logging.Formatter(LOG_FORMAT)

        # Prevent adding duplicate handlers, handlers attached by others are left alone
        if not any(isinstance(h, logging.FileHandler) for h in self.logger.handlers):
            # File handler, opened on first record
            file_handler = logging.FileHandler(log_file, delay=True)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if log_to_console and not any(type(h) is logging.StreamHandler for h in self.logger.handlers):
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

    def log(self, function_name: str, args=None, kwargs=None, output=None, exception: Exception = None):
        args = args or []
        kwargs = kwargs or {}

        self.logger.info(f"Function: {function_name}")

        if (args):
            self.logger.debug(f"Input args: {args}")
        if (kwargs):
            self.logger.debug(f"Input kwargs: {kwargs}")

        if output is not None:
            self.logger.debug(f"Output: {output}")

        if exception is not None:
            self.logger.error(f"Exception in function '{function_name}': {str(exception)}")
            self.logger.error(f"Details: {self.exception_to_serializable(exception)}")
            self.logger.error(''.join(traceback.format_exception(type(exception), exception, exception.__traceback__)))
        self.logger.info(f"----------------------------------------------------------------------------------------------------:end")

    def output(self, text: str, uselog=False):
        """Writes one rendered document to stdout, or to the output logger when uselog is set."""
        if not uselog:
            print(text, flush=True)
            return

        out = logging.getLogger(OUTPUT_LOGGER)
        if not out.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(asctime)s %(message)s'))
            out.addHandler(handler)
            out.setLevel(logging.INFO)
            out.propagate = False
        out.info(text)

    def exception_to_serializable(self, error: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:

        def make_serializable(obj):
            """Recursively converts objects to JSON-friendly formats"""
            if obj is None or isinstance(obj, (str, int, float, bool)):
                return obj
            if isinstance(obj, (list, tuple, set)):
                return [make_serializable(x) for x in obj]
            if isinstance(obj, dict):
                return {str(k): make_serializable(v) for k, v in obj.items()}
            if isinstance(obj, (bytes, bytearray)):
                return obj.decode('utf-8', errors='replace')
            return str(obj)

        result = {
            "success": False,
            "error": {
                "type": error.__class__.__name__,
                "message": str(error),
                "details": {}
            }
        }

        if context:
            result["context"] = make_serializable(context)

        if error.__cause__ is not None:
            result["error"]["cause"] = {
                "type": error.__cause__.__class__.__name__,
                "message": str(error.__cause__),
            }

        # Special handling for gRPC
        if isinstance(error, grpc.RpcError) and callable(getattr(error, 'code', None)):
            code = error.code()
            result["error"].update({
                "subtype": "grpc_error",
                "code_name": getattr(code, 'name', None),
                "code_value": getattr(code, 'value', [None])[0],
                "details": error.details() if callable(getattr(error, 'details', None)) else None,
                "debug_info": make_serializable(
                    error.debug_error_string()
                    if callable(getattr(error, 'debug_error_string', None))
                    else None
                )
            })

        return make_serializable(result)
