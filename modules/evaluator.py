import abc, math, re
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Callable, Dict, List, Optional, Tuple
from helpers.constants import *
from helpers.exceptions import EvaluationError


class Evaluator(abc.ABC):
    """Runs a transformed challenge snippet and returns its final value as a string."""

    @abc.abstractmethod
    def evaluate(self, snippet: str) -> str:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------
# JS numbers are Python floats, strings are str, booleans are bool, null is
# None. Everything else gets a small wrapper type.


class _Undefined:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class JSObject(dict):
    pass


class JSArray(list):
    pass


class JSFunction:
    def __init__(self, params: List[str], body: list, var_names: List[str], source: str, closure: "Scope") -> None:
        self.params = params
        self.body = body
        self.var_names = var_names
        self.source = source
        self.closure = closure
        self.props: Dict[str, Any] = {}


class NativeFunction:
    def __init__(self, name: str, fn: Callable[[list], Any], props: Optional[Dict[str, Any]] = None) -> None:
        self.name = name
        self.fn = fn
        self.props = props or {}


class Scope:
    def __init__(self, parent: Optional["Scope"] = None) -> None:
        self.vars: Dict[str, Any] = {}
        self.parent = parent


    def declare(self, name: str, value: Any = UNDEFINED) -> None:
        self.vars[name] = value


    def lookup(self, name: str) -> Any:
        scope = self
        while scope is not None:
            if name in scope.vars:
                return scope.vars[name]
            scope = scope.parent
        raise EvaluationError(f"ReferenceError: {name} is not defined")


    def assign(self, name: str, value: Any) -> None:
        scope = self
        while scope is not None:
            if name in scope.vars:
                scope.vars[name] = value
                return
            if scope.parent is None:
                # Sloppy-mode implicit global
                scope.vars[name] = value
                return
            scope = scope.parent


class _Return(Exception):
    def __init__(self, value: Any) -> None:
        self.value = value


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

_NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_JS_WHITESPACE = " \t\n\r\x0b\x0c\xa0\ufeff\u2028\u2029"


def js_typeof(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (JSFunction, NativeFunction)):
        return "function"
    return "object"


def number_to_string(x: float) -> str:
    """ECMAScript Number::toString for radix 10."""
    if x != x:
        return "NaN"
    if x == 0:
        return "0"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x < 0:
        return "-" + number_to_string(-x)

    # repr() yields the shortest digit string that round-trips, like JS
    mantissa, _, exp = repr(x).partition("e")
    int_part, _, frac = mantissa.partition(".")
    digits = int_part + frac
    point = len(int_part) + (int(exp) if exp else 0)

    stripped = digits.lstrip("0")
    point -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k, n = len(digits), point

    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return "0." + "0" * (-n) + digits

    e = n - 1
    sign = "+" if e >= 0 else "-"
    if k == 1:
        return f"{digits}e{sign}{abs(e)}"
    return f"{digits[0]}.{digits[1:]}e{sign}{abs(e)}"


def to_fixed(x: float, fraction_digits: int) -> str:
    """Number.prototype.toFixed: exact binary value, ties go to the larger n."""
    if not 0 <= fraction_digits <= 100:
        raise EvaluationError("RangeError: toFixed() digits argument must be between 0 and 100")
    if x != x:
        return "NaN"
    if abs(x) >= 1e21:
        return number_to_string(x)

    sign = ""
    if x < 0:
        sign, x = "-", -x

    with localcontext() as ctx:
        ctx.prec = 200
        quantum = Decimal(1).scaleb(-fraction_digits)
        rounded = Decimal(x).quantize(quantum, rounding=ROUND_HALF_UP)
        return sign + format(rounded, "f")


def check_string_length(length: int) -> None:
    if length > max_string_length:
        raise EvaluationError(f"RangeError: string length {length} exceeds {max_string_length}")


def join_items(items: list, separator: str) -> str:
    parts = ["" if item is None or item is UNDEFINED else to_string(item) for item in items]
    check_string_length(sum(len(part) for part in parts) + len(separator) * max(0, len(parts) - 1))
    return separator.join(parts)


def to_primitive(value: Any) -> Any:
    if isinstance(value, (JSArray, JSObject, JSFunction, NativeFunction)):
        return to_string(value)
    return value


def to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return number_to_string(value)
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, JSArray):
        return join_items(value, ",")
    if isinstance(value, JSObject):
        return "[object Object]"
    if isinstance(value, JSFunction):
        return value.source
    if isinstance(value, NativeFunction):
        return f"function {value.name}() {{ [native code] }}"
    raise EvaluationError(f"Cannot convert {type(value).__name__} to string")


def string_to_number(text: str) -> float:
    text = text.strip(_JS_WHITESPACE)
    if not text:
        return 0.0
    if re.fullmatch(r"0[xX][0-9a-fA-F]+", text):
        return float(int(text, 16))
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    if _NUMERIC_LITERAL.fullmatch(text):
        return float(text)
    return math.nan


def to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, str):
        return string_to_number(value)
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    return to_number(to_primitive(value))


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return not (value == 0 or value != value)
    if isinstance(value, str):
        return value != ""
    return value is not UNDEFINED and value is not None


def to_integer(value: Any) -> int:
    number = to_number(value)
    if number != number:
        return 0
    if math.isinf(number):
        return int(math.copysign(2 ** 53, number))
    return int(number)


def strict_equals(left: Any, right: Any) -> bool:
    if js_typeof(left) != js_typeof(right):
        return False
    if left is None or right is None:
        return left is right
    if isinstance(left, (float, str, bool)):
        return left == right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    left_type, right_type = js_typeof(left), js_typeof(right)
    if left_type == right_type and (left is None) == (right is None):
        return strict_equals(left, right)
    if left in (None, UNDEFINED) or right in (None, UNDEFINED):
        return left in (None, UNDEFINED) and right in (None, UNDEFINED)
    if isinstance(left, bool):
        return loose_equals(to_number(left), right)
    if isinstance(right, bool):
        return loose_equals(left, to_number(right))
    if left_type in ("number", "string") and right_type in ("number", "string"):
        return to_number(left) == to_number(right)
    if left_type in ("object", "function"):
        return loose_equals(to_primitive(left), right)
    if right_type in ("object", "function"):
        return loose_equals(left, to_primitive(right))
    return False


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

def js_add(left: Any, right: Any) -> Any:
    left, right = to_primitive(left), to_primitive(right)
    if isinstance(left, str) or isinstance(right, str):
        left, right = to_string(left), to_string(right)
        check_string_length(len(left) + len(right))
        return left + right
    return to_number(left) + to_number(right)


def js_divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or a != a:
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def js_modulo(a: float, b: float) -> float:
    if b == 0 or a != a or b != b or math.isinf(a):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def js_compare(op: str, left: Any, right: Any) -> bool:
    left, right = to_primitive(left), to_primitive(right)
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if a != a or b != b:
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


def _binary_number_op(op: str, a: float, b: float) -> float:
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "/":
        return js_divide(a, b)
    return js_modulo(a, b)


# ---------------------------------------------------------------------------
# Builtins
# ---------------------------------------------------------------------------

def _arg(args: list, index: int) -> Any:
    return args[index] if index < len(args) else UNDEFINED


def _math_call(fn: Callable[..., float]) -> Callable[..., float]:
    def wrapped(*values: float) -> float:
        try:
            return float(fn(*values))
        except OverflowError:
            return math.inf
        except ValueError:
            return math.nan
    return wrapped


def _js_round(x: float) -> float:
    if x != x or math.isinf(x):
        return x
    floor = math.floor(x)
    return float(floor + 1 if x - floor >= 0.5 else floor)


def _js_log(x: float) -> float:
    if x == 0:
        return -math.inf
    if x < 0 or x != x:
        return math.nan
    return math.log(x)


def _js_pow(x: float, y: float) -> float:
    if y != y:
        return math.nan
    if y == 0:
        return 1.0
    if x != x:
        return math.nan
    try:
        return math.pow(x, y)
    except OverflowError:
        return math.inf if x > 0 or y % 2 == 0 else -math.inf
    except ValueError:
        return math.nan if x < 0 else math.inf


def _js_trunc(x: float) -> float:
    if x != x or math.isinf(x):
        return x
    return float(math.trunc(x))


def _unary_math(name: str, fn: Callable[[float], float]) -> NativeFunction:
    return NativeFunction(name, lambda args: fn(to_number(_arg(args, 0))))


def _js_min(args: list) -> float:
    values = [to_number(a) for a in args]
    if any(v != v for v in values):
        return math.nan
    return min(values, default=math.inf)


def _js_max(args: list) -> float:
    values = [to_number(a) for a in args]
    if any(v != v for v in values):
        return math.nan
    return max(values, default=-math.inf)


def _parse_int(args: list) -> float:
    text = to_string(_arg(args, 0)).strip(_JS_WHITESPACE)
    radix = to_integer(_arg(args, 1))

    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if radix == 0:
        radix = 10
        if text[:2].lower() == "0x":
            radix, text = 16, text[2:]
    elif radix == 16 and text[:2].lower() == "0x":
        text = text[2:]
    if not 2 <= radix <= 36:
        return math.nan

    digits = ""
    for char in text:
        value = int(char, 36) if char.isascii() and char.isalnum() else radix
        if value >= radix:
            break
        digits += char
    if not digits:
        return math.nan
    return float(sign * int(digits, radix))


def _parse_float(args: list) -> float:
    text = to_string(_arg(args, 0)).lstrip(_JS_WHITESPACE)
    match = _FLOAT_PREFIX.match(text)
    if not match:
        return math.nan
    literal = match.group(0)
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def _from_char_code(args: list) -> str:
    return "".join(chr(to_integer(a) & 0xFFFF) for a in args)


def _build_globals() -> Dict[str, Any]:
    math_object = JSObject({
        "PI": math.pi,
        "E": math.e,
        "abs": _unary_math("abs", abs),
        "ceil": _unary_math("ceil", _math_call(lambda x: x if math.isinf(x) or x != x else math.ceil(x))),
        "floor": _unary_math("floor", _math_call(lambda x: x if math.isinf(x) or x != x else math.floor(x))),
        "round": _unary_math("round", _js_round),
        "trunc": _unary_math("trunc", _js_trunc),
        "sqrt": _unary_math("sqrt", _math_call(math.sqrt)),
        "sin": _unary_math("sin", _math_call(math.sin)),
        "cos": _unary_math("cos", _math_call(math.cos)),
        "tan": _unary_math("tan", _math_call(math.tan)),
        "exp": _unary_math("exp", _math_call(math.exp)),
        "log": _unary_math("log", _js_log),
        "pow": NativeFunction("pow", lambda args: _js_pow(to_number(_arg(args, 0)), to_number(_arg(args, 1)))),
        "min": NativeFunction("min", _js_min),
        "max": NativeFunction("max", _js_max),
    })

    return {
        "Math": math_object,
        "parseInt": NativeFunction("parseInt", _parse_int),
        "parseFloat": NativeFunction("parseFloat", _parse_float),
        "isNaN": NativeFunction("isNaN", lambda args: to_number(_arg(args, 0)) != to_number(_arg(args, 0))),
        "isFinite": NativeFunction("isFinite", lambda args: math.isfinite(to_number(_arg(args, 0)))),
        "Number": NativeFunction("Number", lambda args: to_number(args[0]) if args else 0.0),
        "String": NativeFunction(
            "String",
            lambda args: to_string(args[0]) if args else "",
            {"fromCharCode": NativeFunction("fromCharCode", _from_char_code)},
        ),
    }


def _string_method(receiver: str, name: str) -> Optional[NativeFunction]:
    def char_at(args: list) -> str:
        index = to_integer(_arg(args, 0))
        return receiver[index] if 0 <= index < len(receiver) else ""

    def char_code_at(args: list) -> float:
        index = to_integer(_arg(args, 0))
        return float(ord(receiver[index])) if 0 <= index < len(receiver) else math.nan

    def clamp(index: int) -> int:
        return max(0, min(index, len(receiver)))

    def relative(index: int) -> int:
        return clamp(index + len(receiver) if index < 0 else index)

    def substr(args: list) -> str:
        start = relative(to_integer(_arg(args, 0)))
        length = len(receiver) - start if _arg(args, 1) is UNDEFINED else to_integer(args[1])
        return receiver[start:start + max(0, length)]

    def substring(args: list) -> str:
        start = clamp(to_integer(_arg(args, 0)))
        end = len(receiver) if _arg(args, 1) is UNDEFINED else clamp(to_integer(args[1]))
        return receiver[min(start, end):max(start, end)]

    def slice_(args: list) -> str:
        start = relative(to_integer(_arg(args, 0)))
        end = len(receiver) if _arg(args, 1) is UNDEFINED else relative(to_integer(args[1]))
        return receiver[start:end]

    def index_of(args: list) -> float:
        start = clamp(to_integer(_arg(args, 1)))
        return float(receiver.find(to_string(_arg(args, 0)), start))

    methods = {
        "charAt": char_at,
        "charCodeAt": char_code_at,
        "substr": substr,
        "substring": substring,
        "slice": slice_,
        "indexOf": index_of,
        "toUpperCase": lambda args: receiver.upper(),
        "toLowerCase": lambda args: receiver.lower(),
        "toString": lambda args: receiver,
    }
    if name not in methods:
        return None
    return NativeFunction(name, methods[name])


def _number_method(receiver: float, name: str) -> Optional[NativeFunction]:
    if name == "toFixed":
        return NativeFunction(name, lambda args: to_fixed(receiver, to_integer(_arg(args, 0))))
    if name == "toString":
        return NativeFunction(name, lambda args: number_to_string(receiver))
    return None


def get_property(target: Any, key: Any) -> Any:
    if target is UNDEFINED or target is None:
        raise EvaluationError(f"TypeError: Cannot read properties of {to_string(target)} (reading '{to_string(key)}')")

    name = to_string(key)
    if isinstance(target, str):
        if name == "length":
            return float(len(target))
        if name.isdigit():
            index = int(name)
            return target[index] if index < len(target) else UNDEFINED
        return _string_method(target, name) or UNDEFINED

    if isinstance(target, bool):
        if name == "toString":
            return NativeFunction(name, lambda args: to_string(target))
        return UNDEFINED

    if isinstance(target, float):
        return _number_method(target, name) or UNDEFINED

    if isinstance(target, JSArray):
        if name == "length":
            return float(len(target))
        if name.isdigit():
            index = int(name)
            return target[index] if index < len(target) else UNDEFINED
        if name == "join":
            return NativeFunction(name, lambda args: join_items(
                target, "," if _arg(args, 0) is UNDEFINED else to_string(args[0])
            ))
        if name == "toString":
            return NativeFunction(name, lambda args: to_string(target))
        return UNDEFINED

    if isinstance(target, JSObject):
        return target.get(name, UNDEFINED)

    if isinstance(target, (JSFunction, NativeFunction)):
        return target.props.get(name, UNDEFINED)

    return UNDEFINED


def set_property(target: Any, key: Any, value: Any) -> None:
    name = to_string(key)
    if isinstance(target, JSObject):
        target[name] = value
        return
    if isinstance(target, JSArray) and name.isdigit():
        index = int(name)
        if index >= max_array_length:
            raise EvaluationError(f"RangeError: array index {index} exceeds {max_array_length - 1}")
        target.extend([UNDEFINED] * (index + 1 - len(target)))
        target[index] = value
        return
    if isinstance(target, (JSFunction, NativeFunction)):
        target.props[name] = value
        return
    raise EvaluationError(f"TypeError: Cannot set property '{name}' of {to_string(target)}")


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(r"""
    (?P<ws>[ \t\r\n\f\v\u00a0\ufeff\u2028\u2029]+)
  | (?P<comment>//[^\n]*|/\*[\s\S]*?\*/)
  | (?P<num>0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<str>"(?:[^"\\\n]|\\[\s\S])*"|'(?:[^'\\\n]|\\[\s\S])*'|`(?:[^`\\]|\\[\s\S])*`)
  | (?P<punct>===|!==|=>|==|!=|<=|>=|&&|\|\||[-+*/%]=|[{}()\[\];,.?:+\-*/%!<>=])
""", re.VERBOSE)

_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}

_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": UNDEFINED,
    "NaN": math.nan,
    "Infinity": math.inf,
}

_UNSUPPORTED_KEYWORDS = {
    "new", "this", "if", "else", "for", "while", "do", "switch", "case", "break", "continue",
    "delete", "void", "in", "instanceof", "try", "catch", "finally", "throw", "class", "with",
    "yield", "await", "async", "import", "export", "debugger",
}


class Token:
    __slots__ = ("kind", "value", "start", "end", "newline_before")

    def __init__(self, kind: str, value: Any, start: int, end: int, newline_before: bool) -> None:
        self.kind = kind
        self.value = value
        self.start = start
        self.end = end
        self.newline_before = newline_before

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r})"


def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\":
            out.append(char)
            i += 1
            continue

        escape = body[i + 1]
        i += 2
        if escape in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[escape])
        elif escape == "x":
            out.append(chr(int(body[i:i + 2], 16)))
            i += 2
        elif escape == "u" and body[i:i + 1] == "{":
            end = body.index("}", i)
            out.append(chr(int(body[i + 1:end], 16)))
            i = end + 1
        elif escape == "u":
            out.append(chr(int(body[i:i + 4], 16)))
            i += 4
        elif escape == "\r":
            if body[i:i + 1] == "\n":
                i += 1
        elif escape != "\n":
            out.append(escape)
    return "".join(out)


def tokenize(source: str) -> List[Token]:
    tokens = []
    pos = 0
    newline = False
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if not match:
            raise EvaluationError(f"SyntaxError: unexpected character {source[pos]!r} at {pos}")

        kind = match.lastgroup
        text = match.group(0)
        if kind in ("ws", "comment"):
            newline = newline or "\n" in text
        elif kind == "num":
            value = float(int(text, 16)) if text[:2].lower() == "0x" else float(text)
            tokens.append(Token("num", value, pos, match.end(), newline))
            newline = False
        elif kind == "str":
            if text[0] == "`" and "${" in text:
                raise EvaluationError("SyntaxError: template substitutions are not supported")
            try:
                value = _unescape(text[1:-1])
            except (ValueError, IndexError):
                raise EvaluationError(f"SyntaxError: invalid escape sequence in {text}")
            tokens.append(Token("str", value, pos, match.end(), newline))
            newline = False
        else:
            tokens.append(Token(kind, text, pos, match.end(), newline))
            newline = False
        pos = match.end()

    tokens.append(Token("eof", None, len(source), len(source), True))
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------
# Nodes are plain tuples tagged by their first element.

_ASSIGN_OPS = ("=", "+=", "-=", "*=", "/=", "%=")


class Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0
        # var names declared in the function currently being parsed
        self.var_stack: List[List[str]] = [[]]


    @property
    def token(self) -> Token:
        return self.tokens[self.pos]


    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]


    def at(self, value: str) -> bool:
        return self.token.kind in ("punct", "name") and self.token.value == value


    def advance(self) -> Token:
        token = self.token
        if token.kind != "eof":
            self.pos += 1
        return token


    def expect(self, value: str) -> Token:
        if not self.at(value):
            self.fail(f"expected '{value}'")
        return self.advance()


    def fail(self, message: str) -> None:
        token = self.token
        found = "end of input" if token.kind == "eof" else repr(token.value)
        raise EvaluationError(f"SyntaxError: {message}, found {found} at {token.start}")


    def parse_program(self) -> Tuple[list, List[str]]:
        body = []
        while self.token.kind != "eof":
            body.append(self.parse_statement())
        return body, self.var_stack[0]


    def end_statement(self) -> None:
        if self.at(";"):
            self.advance()
        elif not (self.at("}") or self.token.kind == "eof" or self.token.newline_before):
            self.fail("expected ';'")


    def parse_statement(self) -> tuple:
        if self.at(";"):
            self.advance()
            return ("empty",)

        if self.at("{"):
            self.advance()
            body = []
            while not self.at("}"):
                if self.token.kind == "eof":
                    self.fail("unterminated block")
                body.append(self.parse_statement())
            self.advance()
            return ("block", body)

        if self.token.kind == "name" and self.token.value in ("var", "let", "const"):
            self.advance()
            declarations = []
            while True:
                if self.token.kind != "name":
                    self.fail("expected variable name")
                name = self.advance().value
                self.var_stack[-1].append(name)
                init = None
                if self.at("="):
                    self.advance()
                    init = self.parse_assignment()
                declarations.append((name, init))
                if not self.at(","):
                    break
                self.advance()
            self.end_statement()
            return ("var", declarations)

        if self.at("return"):
            if len(self.var_stack) == 1:
                self.fail("return outside of function")
            self.advance()
            value = None
            if not (self.at(";") or self.at("}") or self.token.kind == "eof" or self.token.newline_before):
                value = self.parse_expression()
            self.end_statement()
            return ("return", value)

        expression = self.parse_expression()
        self.end_statement()
        return ("expr", expression)


    def parse_expression(self) -> tuple:
        expression = self.parse_assignment()
        if not self.at(","):
            return expression
        items = [expression]
        while self.at(","):
            self.advance()
            items.append(self.parse_assignment())
        return ("seq", items)


    def is_arrow(self) -> bool:
        if self.token.kind == "name" and self.peek().value == "=>":
            return True
        if not self.at("("):
            return False

        depth = 0
        index = self.pos
        while index < len(self.tokens):
            token = self.tokens[index]
            if token.kind == "eof":
                return False
            if token.kind == "punct" and token.value == "(":
                depth += 1
            elif token.kind == "punct" and token.value == ")":
                depth -= 1
                if depth == 0:
                    following = self.tokens[index + 1]
                    return following.kind == "punct" and following.value == "=>"
            index += 1
        return False


    def parse_assignment(self) -> tuple:
        if self.is_arrow():
            return self.parse_arrow()

        target = self.parse_conditional()
        if self.token.kind == "punct" and self.token.value in _ASSIGN_OPS:
            if target[0] not in ("name", "member"):
                self.fail("invalid assignment target")
            op = self.advance().value
            value = self.parse_assignment()
            return ("assign", op, target, value)
        return target


    def parse_conditional(self) -> tuple:
        test = self.parse_binary(0)
        if not self.at("?"):
            return test
        self.advance()
        consequent = self.parse_assignment()
        self.expect(":")
        alternate = self.parse_assignment()
        return ("cond", test, consequent, alternate)


    _PRECEDENCE = [
        ("||",),
        ("&&",),
        ("==", "!=", "===", "!=="),
        ("<", ">", "<=", ">="),
        ("+", "-"),
        ("*", "/", "%"),
    ]


    def parse_binary(self, level: int) -> tuple:
        if level == len(self._PRECEDENCE):
            return self.parse_unary()

        operators = self._PRECEDENCE[level]
        left = self.parse_binary(level + 1)
        while self.token.kind == "punct" and self.token.value in operators:
            op = self.advance().value
            right = self.parse_binary(level + 1)
            kind = "logical" if op in ("||", "&&") else "binary"
            left = (kind, op, left, right)
        return left


    def parse_unary(self) -> tuple:
        if self.token.kind == "punct" and self.token.value in ("+", "-", "!"):
            op = self.advance().value
            return ("unary", op, self.parse_unary())
        if self.at("typeof"):
            self.advance()
            return ("typeof", self.parse_unary())
        return self.parse_postfix()


    def parse_postfix(self) -> tuple:
        node = self.parse_primary()
        while True:
            if self.at("."):
                self.advance()
                if self.token.kind != "name":
                    self.fail("expected property name")
                node = ("member", node, ("str", self.advance().value))
            elif self.at("["):
                self.advance()
                key = self.parse_expression()
                self.expect("]")
                node = ("member", node, key)
            elif self.at("("):
                self.advance()
                args = []
                while not self.at(")"):
                    args.append(self.parse_assignment())
                    if not self.at(","):
                        break
                    self.advance()
                self.expect(")")
                node = ("call", node, args)
            else:
                return node


    def parse_primary(self) -> tuple:
        token = self.token

        if token.kind == "num":
            self.advance()
            return ("num", token.value)

        if token.kind == "str":
            self.advance()
            return ("str", token.value)

        if token.kind == "name":
            if token.value in _LITERALS:
                self.advance()
                return ("lit", _LITERALS[token.value])
            if token.value == "function":
                return self.parse_function()
            if token.value in _UNSUPPORTED_KEYWORDS or token.value in ("var", "let", "const", "return", "typeof"):
                self.fail(f"unsupported keyword '{token.value}'")
            self.advance()
            return ("name", token.value)

        if self.at("("):
            self.advance()
            expression = self.parse_expression()
            self.expect(")")
            return expression

        if self.at("["):
            self.advance()
            elements = []
            while not self.at("]"):
                elements.append(self.parse_assignment())
                if not self.at(","):
                    break
                self.advance()
            self.expect("]")
            return ("array", elements)

        if self.at("{"):
            self.advance()
            properties = []
            while not self.at("}"):
                key_token = self.advance()
                if key_token.kind == "num":
                    key = number_to_string(key_token.value)
                elif key_token.kind in ("str", "name"):
                    key = key_token.value
                else:
                    self.pos -= 1
                    self.fail("expected property key")
                self.expect(":")
                properties.append((key, self.parse_assignment()))
                if not self.at(","):
                    break
                self.advance()
            self.expect("}")
            return ("object", properties)

        self.fail("unexpected token")


    def parse_params(self) -> List[str]:
        self.expect("(")
        params = []
        while not self.at(")"):
            if self.token.kind != "name":
                self.fail("expected parameter name")
            params.append(self.advance().value)
            if not self.at(","):
                break
            self.advance()
        self.expect(")")
        return params


    def parse_function_body(self) -> Tuple[list, List[str]]:
        self.expect("{")
        self.var_stack.append([])
        body = []
        while not self.at("}"):
            if self.token.kind == "eof":
                self.fail("unterminated function body")
            body.append(self.parse_statement())
        self.advance()
        return body, self.var_stack.pop()


    def parse_function(self) -> tuple:
        start = self.advance().start
        if self.token.kind == "name":
            self.advance()
        params = self.parse_params()
        body, var_names = self.parse_function_body()
        source = self.source[start:self.tokens[self.pos - 1].end]
        return ("func", params, body, var_names, source)


    def parse_arrow(self) -> tuple:
        start = self.token.start
        if self.token.kind == "name":
            params = [self.advance().value]
        else:
            params = self.parse_params()
        self.expect("=>")

        if self.at("{"):
            body, var_names = self.parse_function_body()
        else:
            self.var_stack.append([])
            expression = self.parse_assignment()
            body, var_names = [("return", expression)], self.var_stack.pop()
        source = self.source[start:self.tokens[self.pos - 1].end]
        return ("func", params, body, var_names, source)


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------

class Interpreter:
    def __init__(self, max_steps: int = max_eval_steps, max_depth: int = max_call_depth) -> None:
        self.max_steps = max_steps
        self.max_depth = max_depth
        self.steps = 0
        self.depth = 0
        self.global_scope = Scope()
        for name, value in _build_globals().items():
            self.global_scope.declare(name, value)


    def run(self, source: str) -> Any:
        body, var_names = Parser(source).parse_program()
        for name in var_names:
            if name not in self.global_scope.vars:
                self.global_scope.declare(name)

        completion = UNDEFINED
        for statement in body:
            value = self.execute(statement, self.global_scope)
            if statement[0] == "expr":
                completion = value
        return completion


    def tick(self) -> None:
        self.steps += 1
        if self.steps > self.max_steps:
            raise EvaluationError("Evaluation step budget exceeded")


    def execute(self, statement: tuple, scope: Scope) -> Any:
        self.tick()
        kind = statement[0]

        if kind == "expr":
            return self.evaluate(statement[1], scope)

        if kind == "var":
            for name, init in statement[1]:
                if init is not None:
                    scope.assign(name, self.evaluate(init, scope))
            return UNDEFINED

        if kind == "return":
            raise _Return(UNDEFINED if statement[1] is None else self.evaluate(statement[1], scope))

        if kind == "block":
            for inner in statement[1]:
                self.execute(inner, scope)
            return UNDEFINED

        return UNDEFINED


    def evaluate(self, node: tuple, scope: Scope) -> Any:
        self.tick()
        kind = node[0]

        if kind in ("num", "str", "lit"):
            return node[1]

        if kind == "name":
            return scope.lookup(node[1])

        if kind == "unary":
            value = self.evaluate(node[2], scope)
            if node[1] == "!":
                return not to_boolean(value)
            number = to_number(value)
            return -number if node[1] == "-" else number

        if kind == "typeof":
            if node[1][0] == "name":
                try:
                    return js_typeof(scope.lookup(node[1][1]))
                except EvaluationError:
                    return "undefined"
            return js_typeof(self.evaluate(node[1], scope))

        if kind == "binary":
            return self.binary(node[1], self.evaluate(node[2], scope), self.evaluate(node[3], scope))

        if kind == "logical":
            left = self.evaluate(node[2], scope)
            if node[1] == "&&":
                return self.evaluate(node[3], scope) if to_boolean(left) else left
            return left if to_boolean(left) else self.evaluate(node[3], scope)

        if kind == "cond":
            branch = node[2] if to_boolean(self.evaluate(node[1], scope)) else node[3]
            return self.evaluate(branch, scope)

        if kind == "assign":
            return self.assign(node[1], node[2], node[3], scope)

        if kind == "member":
            target = self.evaluate(node[1], scope)
            return get_property(target, self.evaluate(node[2], scope))

        if kind == "call":
            return self.call(node[1], node[2], scope)

        if kind == "array":
            return JSArray(self.evaluate(element, scope) for element in node[1])

        if kind == "object":
            return JSObject((key, self.evaluate(value, scope)) for key, value in node[1])

        if kind == "func":
            return JSFunction(node[1], node[2], node[3], node[4], scope)

        if kind == "seq":
            value = UNDEFINED
            for item in node[1]:
                value = self.evaluate(item, scope)
            return value

        raise EvaluationError(f"Unsupported node '{kind}'")


    def binary(self, op: str, left: Any, right: Any) -> Any:
        if op == "+":
            return js_add(left, right)
        if op in ("-", "*", "/", "%"):
            return _binary_number_op(op, to_number(left), to_number(right))
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)
        return js_compare(op, left, right)


    def assign(self, op: str, target: tuple, value_node: tuple, scope: Scope) -> Any:
        if target[0] == "name":
            name = target[1]
            if op == "=":
                value = self.evaluate(value_node, scope)
            else:
                value = self.binary(op[0], scope.lookup(name), self.evaluate(value_node, scope))
            scope.assign(name, value)
            return value

        obj = self.evaluate(target[1], scope)
        key = self.evaluate(target[2], scope)
        if op == "=":
            value = self.evaluate(value_node, scope)
        else:
            value = self.binary(op[0], get_property(obj, key), self.evaluate(value_node, scope))
        set_property(obj, key, value)
        return value


    def call(self, callee_node: tuple, arg_nodes: list, scope: Scope) -> Any:
        if callee_node[0] == "member":
            target = self.evaluate(callee_node[1], scope)
            callee = get_property(target, self.evaluate(callee_node[2], scope))
        else:
            callee = self.evaluate(callee_node, scope)

        args = [self.evaluate(arg, scope) for arg in arg_nodes]
        return self.invoke(callee, args)


    def invoke(self, callee: Any, args: list) -> Any:
        if isinstance(callee, NativeFunction):
            return callee.fn(args)

        if not isinstance(callee, JSFunction):
            raise EvaluationError(f"TypeError: {to_string(callee)} is not a function")

        self.depth += 1
        if self.depth > self.max_depth:
            raise EvaluationError("Maximum call depth exceeded")

        try:
            local = Scope(callee.closure)
            for index, param in enumerate(callee.params):
                local.declare(param, _arg(args, index))
            for name in callee.var_names:
                if name not in local.vars:
                    local.declare(name)

            for statement in callee.body:
                self.execute(statement, local)
            return UNDEFINED
        except _Return as signal:
            return signal.value
        finally:
            self.depth -= 1


class ExpressionEvaluator(Evaluator):
    """Default evaluator: a small JS-subset interpreter with no DOM, timers or I/O.

    Each call gets a fresh interpreter, so instances can be shared between threads.
    """

    def __init__(self, max_steps: int = max_eval_steps, max_depth: int = max_call_depth) -> None:
        self.max_steps = max_steps
        self.max_depth = max_depth


    def evaluate(self, snippet: str) -> str:
        interpreter = Interpreter(self.max_steps, self.max_depth)
        try:
            return to_string(interpreter.run(snippet))
        except EvaluationError:
            raise
        except RecursionError:
            raise EvaluationError("Expression nesting is too deep")
        except MemoryError:
            raise EvaluationError("Evaluation ran out of memory")
        except (ValueError, OverflowError, TypeError, IndexError, KeyError) as e:
            raise EvaluationError(f"Evaluation failed: {e}") from e
