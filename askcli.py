#!/usr/bin/env python3
########################################################################
# Copyright (C) 2026  Kevin M. Hubbard BlackMesaLabs
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# askcli : terminal assistant that forwards questions and source files
# to Gemini and can rewrite a file from the model's fixed version.
#
# Env Setup Linux
#  ~/.bashrc
#    export GEMINI_API_KEY=12345678
# Env Setup DOS
#  setx GEMINI_API_KEY "12345678"
#
# [ site_prompt.txt ]
#   Prefer concise answers and avoid emojis.
#
#######################################
# Linux / macOS
#  export ASKCLI_API_KEY="mykey123"
#  export ASKCLI_MODEL="gemini-2.5-flash"
#  export ASKCLI_DIR="$HOME/.askcli"
#  export ASKCLI_LOG_DIR="$HOME/.askcli/logs"
# Windows (PowerShell)
#  setx ASKCLI_API_KEY "mykey123"
#  setx ASKCLI_MODEL "gemini-2.5-pro"
#
# History:
#  2026.03.02 : khubbard : Created from the node askcli script. checkfile.
#  2026.03.09 : khubbard : Added debug, file and overwrite with .backup
#  2026.03.16 : khubbard : Suggestions from history and filesystem.
########################################################################
ASKCLI_VERSION = "1.0.0"

"""
Interactive Gemini assistant for the terminal.

Features:
- Free-form questions answered by the configured model, with the
  conversation carried across turns
- checkfile <path> : send a file for analysis
- debug <path>     : ask for bugs and fixes, then offer to rewrite the file
- file <path>      : load a file as background context for later questions
- overwrite        : rewrite the last analyzed file, keeping a .backup copy
- Tab completion blending earlier questions with filesystem paths

Notes:
- Nothing is persisted between runs. The only file askcli writes on its
  own is the <file>.backup copy made before an overwrite.
"""

import os
import sys
import re
import hashlib
import getpass
import time
from collections import namedtuple
from typing import Optional, List, Iterable

from dotenv import load_dotenv

from askcli_token_maker import decrypt_token

# ---------- Config ----------
BACKUP_SUFFIX = ".backup"
PAGE_SIZE = 10
BOT_NAME = "Gemini"

ANSI_RESET = "\033[0m"
ANSI_BOLD = "\033[1m"
ANSI_RED = "\033[31m"
ANSI_GREEN = "\033[32m"
ANSI_YELLOW = "\033[33m"
ANSI_BLUE = "\033[34m"
ANSI_CYAN = "\033[36m"
ANSI_WHITE = "\033[37m"
ANSI_INVERSE = "\033[7m"

# ---------- Data Model ----------
Exchange = namedtuple("Exchange", ["question", "seq"])
Command = namedtuple("Command", ["kind", "arg"])
Suggestion = namedtuple("Suggestion", ["text", "origin"])
FileSnapshot = namedtuple("FileSnapshot", ["path", "content", "data"])

CMD_EXIT = "exit"
CMD_OVERWRITE = "overwrite"
CMD_CHECKFILE = "checkfile"
CMD_DEBUG = "debug"
CMD_FILE = "file"
CMD_ASK = "ask"

# keyword, command kind, keyword is a prefix followed by a path
COMMAND_TABLE = [
    ("exit",       CMD_EXIT,      False),
    ("overwrite",  CMD_OVERWRITE, False),
    ("checkfile ", CMD_CHECKFILE, True),
    ("debug ",     CMD_DEBUG,     True),
    ("file ",      CMD_FILE,      True),
]

ORIGIN_HISTORY = "history"
ORIGIN_FILESYSTEM = "filesystem"
SUGGESTION_SEPARATOR = Suggestion("-" * 20, "separator")

# opening fence line, body, closing fence alone on its own line
CODE_FENCE_RE = re.compile(r"```[^\n]*\n(.*?)^[ \t]*```[ \t]*$", re.DOTALL | re.MULTILINE)
# closing fence glued to the last line of the body
CODE_FENCE_TAIL_RE = re.compile(r"```[^\n]*\n(.*)```\s*\Z", re.DOTALL)
ONE_LINE_FENCE_RE = re.compile(r"\A\s*```([^\n]*?)```\s*\Z")


class ai_credential_error(Exception):
    """No usable provider client could be built."""


class ai_request_error(Exception):
    """A remote call failed or came back empty."""


# ---------- Session State ----------
class askcli_session:
    """
    In-memory state for one run: the questions asked so far and the file
    most recently read by checkfile, debug or file. Single owner, no I/O.
    """
    def __init__(self):
        self.history: List[Exchange] = []
        self.last_analyzed_file: Optional[str] = None

    def append_exchange(self, question: str) -> Exchange:
        item = Exchange(question, len(self.history))
        self.history.append(item)
        return item

    def record_analyzed(self, path: str) -> None:
        self.last_analyzed_file = path

    def last_analyzed(self) -> Optional[str]:
        return self.last_analyzed_file

    def questions(self) -> List[str]:
        return [item.question for item in self.history]


# ---------- Command Classification ----------
def classify(line: str) -> Command:
    """
    Map one input line to exactly one Command. Keywords match without
    regard to case; exit and overwrite must be the whole line. Surrounding
    whitespace is ignored when matching keywords, and an Ask keeps the
    line exactly as typed.
    """
    text = line.strip()
    lower = text.lower()
    for keyword, kind, takes_path in COMMAND_TABLE:
        if takes_path:
            if lower.startswith(keyword):
                return Command(kind, text[len(keyword):].strip())
        elif lower == keyword:
            return Command(kind, None)
    return Command(CMD_ASK, line)


# ---------- Suggestions ----------
def _has_separator(text: str) -> bool:
    return "/" in text or "\\" in text or os.sep in text


def _filesystem_candidates(partial: str) -> List[str]:
    cwd = os.getcwd()
    normalized = partial.replace("\\", "/") if os.sep == "/" else partial
    dir_part, fragment = os.path.split(normalized)
    search_dir = os.path.join(cwd, os.path.expanduser(dir_part or "."))
    try:
        names = sorted(os.listdir(search_dir))
    except OSError:
        return []
    fragment = fragment.lower()
    found = []
    for name in names:
        if fragment not in name.lower():
            continue
        full = os.path.join(search_dir, name)
        try:
            found.append(os.path.relpath(full, cwd))
        except ValueError:
            # Different drive on Windows
            found.append(os.path.normpath(full))
    return found


def _dedup(items: Iterable[str], seen: set) -> List[str]:
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def suggest(history, partial: str) -> List[Suggestion]:
    """
    Candidate completions for the partial input line.

    history may hold Exchange records or plain strings. Filesystem matches
    come first, then SUGGESTION_SEPARATOR, then history newest first. The
    separator only appears when both groups are non-empty.
    """
    partial = partial or ""
    needle = partial.lower()
    history_hits = []
    for item in reversed(list(history)):
        text = getattr(item, "question", item)
        if needle in text.lower():
            history_hits.append(text)

    file_hits = []
    if _has_separator(partial):
        file_hits = _filesystem_candidates(partial)

    seen = set()
    file_hits = _dedup(file_hits, seen)
    history_hits = _dedup(history_hits, seen)

    result = [Suggestion(t, ORIGIN_FILESYSTEM) for t in file_hits]
    if file_hits and history_hits:
        result.append(SUGGESTION_SEPARATOR)
    result += [Suggestion(t, ORIGIN_HISTORY) for t in history_hits]
    return result


# ---------- Terminal Rendering ----------
def render(text: str) -> str:
    text = re.sub(r"\*\*(.*?)\*\*", ANSI_BOLD + r"\1" + ANSI_RESET, text)
    text = re.sub(r"^#+\s(.*?)$", ANSI_BOLD + ANSI_CYAN + r"\1" + ANSI_RESET,
                  text, flags=re.MULTILINE)
    text = re.sub(r"^\* (.*?)$", "  " + ANSI_GREEN + "•" + ANSI_RESET + r" \1",
                  text, flags=re.MULTILINE)
    text = re.sub(r"^(\d+\.)\s(.*?)$", "  " + ANSI_GREEN + r"\1" + ANSI_RESET + r" \2",
                  text, flags=re.MULTILINE)
    text = re.sub(r"`([^`\n]+)`", ANSI_INVERSE + r"\1" + ANSI_RESET, text)
    return text


def colored(text: str, code: str) -> str:
    return f"{code}{text}{ANSI_RESET}"


def confirm(question: str) -> bool:
    try:
        reply = input(f"{question} (yes/no): ").strip().lower()
    except EOFError:
        print()
        return False
    return reply in ("y", "yes")


def extract_code_block(reply: str) -> str:
    """
    Return the body of the first fenced code block in reply, or the whole
    reply trimmed when there is no fence.
    """
    # TODO: Refuse to write when the reply has no fence and reads like prose.
    m = CODE_FENCE_RE.search(reply) or CODE_FENCE_TAIL_RE.search(reply)
    if m:
        return m.group(1)
    m = ONE_LINE_FENCE_RE.match(reply)
    if m:
        return m.group(1).strip()
    return reply.strip()


def read_snapshot(path: str) -> FileSnapshot:
    with open(path, "rb") as f:
        data = f.read()
    return FileSnapshot(path, data.decode("utf-8", errors="replace"), data)


def resolve_path(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path.strip()))


class api_askcli:
    def __init__(self):
        self.provider = None
        self.cfg = None
        self.debug = False

    def open_ai_session( self ):
        """
        Build the provider client. Raises ai_credential_error when no
        usable client can be made; the caller treats that as fatal.
        """
        provider_info = self.get_provider_config()
        if self.debug:
            print("open_ai_session(%s:%s)" % (provider_info["provider"], provider_info["model"]))
        if provider_info["provider"] != "gemini":
            raise ai_credential_error(f"Unknown ai provider: {provider_info['provider']}")
        if not provider_info["key"]:
            raise ai_credential_error(
                "No API key found. Set ASKCLI_API_KEY or GEMINI_API_KEY "
                "(a .env file in the working directory also works).")
        self.provider = gemini_provider( self )
        self.provider.open_session()

    def close_ai_session( self ):
        if self.provider:
            self.provider.close_session()

    def ask_ai_model( self, prompt ):
        if self.debug:
            print("ask_ai_model() %d chars" % len(prompt) )
        result = self.provider.send_message( prompt )
        self.log_usage( prompt, result )
        return result

    # ---------- Handlers ----------
    def ask_question( self, session, question ):
        try:
            reply = self.ask_ai_model( question )
        except ai_request_error as e:
            print(colored("AI error: ", ANSI_RED) + str(e))
            return
        print(colored(f"\n{BOT_NAME}: ", ANSI_YELLOW) + colored(render(reply), ANSI_WHITE))
        session.append_exchange( question )

    def _read_for_analysis( self, session, path ):
        abs_path = resolve_path( path )
        if not os.path.exists( abs_path ):
            print(colored(f"File not found: {abs_path}", ANSI_RED))
            return None
        try:
            snapshot = read_snapshot( abs_path )
        except OSError as e:
            print(colored(f"Error reading file: {abs_path}: {e}", ANSI_RED))
            return None
        session.record_analyzed( abs_path )
        print(colored(f"Reading file: {abs_path}", ANSI_CYAN))
        return snapshot

    def check_file( self, session, path ):
        snapshot = self._read_for_analysis( session, path )
        if snapshot is None:
            return
        prompt = (f"Analyze this file ({os.path.basename(snapshot.path)}) and provide feedback:"
                  f"\n\n{snapshot.content}")
        try:
            reply = self.ask_ai_model( prompt )
        except ai_request_error as e:
            print(colored("Error analyzing file: ", ANSI_RED) + str(e))
            return
        print(colored(f"\n{BOT_NAME}'s Analysis:\n", ANSI_GREEN) + colored(render(reply), ANSI_WHITE))

    def debug_file( self, session, path ):
        snapshot = self._read_for_analysis( session, path )
        if snapshot is None:
            return
        prompt = (f"Debug this file ({os.path.basename(snapshot.path)}). "
                  "Identify any bugs, errors or defects and suggest concrete fixes for each:"
                  f"\n\n{snapshot.content}")
        try:
            reply = self.ask_ai_model( prompt )
        except ai_request_error as e:
            print(colored("Error debugging file: ", ANSI_RED) + str(e))
            return
        print(colored(f"\n{BOT_NAME}'s Debug Report:\n", ANSI_GREEN) + colored(render(reply), ANSI_WHITE))
        if confirm(f"Would you like to overwrite {os.path.basename(snapshot.path)} with a fixed version?"):
            self.handle_overwrite( session )
        else:
            print("No changes made.")

    def add_file_context( self, session, path ):
        snapshot = self._read_for_analysis( session, path )
        if snapshot is None:
            return
        prompt = (f"Here is the file {os.path.basename(snapshot.path)} for context. "
                  "Keep it in mind for my next questions. Do not analyze it now, just reply OK."
                  f"\n\n{snapshot.content}")
        try:
            self.ask_ai_model( prompt )
        except ai_request_error as e:
            print(colored("Error adding file context: ", ANSI_RED) + str(e))
            return
        print(colored(f"Added {os.path.basename(snapshot.path)} to context.", ANSI_GREEN))

    def handle_overwrite( self, session, arg=None ):
        """
        Rewrite the last analyzed file from the model's fixed version.

        The file is re-read here rather than reusing the copy sent earlier.
        Nothing is written until the operator confirms, and the backup
        must be on disk before the original is touched.
        """
        path = session.last_analyzed()
        if not path:
            print(colored("No file has been analyzed yet. Use checkfile or debug first.", ANSI_RED))
            return
        if not os.path.exists( path ):
            print(colored(f"File not found: {path}", ANSI_RED))
            return
        try:
            snapshot = read_snapshot( path )
        except OSError as e:
            print(colored(f"Error reading file: {path}: {e}", ANSI_RED))
            return

        prompt = (f"Rewrite the complete file {os.path.basename(path)} with all bugs fixed. "
                  "Reply with ONLY the full code of the file. No explanations, no prose, "
                  "no markdown and no code fences."
                  f"\n\n{snapshot.content}")
        try:
            reply = self.ask_ai_model( prompt )
        except ai_request_error as e:
            print(colored("Error generating fixed code: ", ANSI_RED) + str(e))
            return
        new_code = extract_code_block( reply )

        print(colored(f"\nProposed new content for {path}:\n", ANSI_YELLOW))
        print(new_code)
        print()
        if not confirm(f"Save these changes to {os.path.basename(path)}?"):
            print("No changes made.")
            return

        backup_path = path + BACKUP_SUFFIX
        try:
            with open( backup_path, "wb" ) as f:
                f.write( snapshot.data )
        except OSError as e:
            print(colored(f"Backup failed: {backup_path}: {e}", ANSI_RED))
            print("Original file left untouched.")
            return
        try:
            with open( path, "w", encoding="utf-8", newline="" ) as f:
                f.write( new_code )
        except OSError as e:
            print(colored(f"Error writing file: {path}: {e}", ANSI_RED))
            print(f"Original content is in {backup_path}")
            return
        print(colored(f"Backup saved to {backup_path}", ANSI_CYAN))
        print(colored(f"Updated {path}", ANSI_GREEN))

    # ---------- Usage Log ----------
    def obfuscate_key(self, api_key):
        if not api_key:
            return "none"
        h = hashlib.sha256(api_key.encode()).hexdigest()
        return h[:10]   # short, non-reversible fingerprint

    def get_log_identity(self):
        """
        Returns the identity string to store in logs based on ASKCLI_LOG_IDENTITY.
        Modes:
            username  -> real username
            process   -> anonymized process ID
        """
        mode = self.cfg.get("ASKCLI_LOG_IDENTITY", "username").lower()
        if mode == "process":
            return "%08x" % os.getpid()
        return current_username()

    def log_usage(self, prompt, response_text):
        cfg = self.cfg
        if not cfg or not cfg.get("ASKCLI_LOG_DIR"):
            return
        query_log = os.path.join(cfg["ASKCLI_LOG_DIR"], "usage_queries.log")
        ai_engine = cfg["ASKCLI_PROVIDER"] + ":" + cfg["ASKCLI_MODEL"]
        upload_bytes = len(prompt.encode("utf-8"))
        download_bytes = len(response_text.encode("utf-8"))
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
        key_id = self.obfuscate_key(cfg.get("ASKCLI_API_KEY"))
        line = f"{ts}\t{self.get_log_identity()}\t{ai_engine}\t{key_id}\t{upload_bytes}\t{download_bytes}\n"
        try:
            with open(query_log, "a") as f:
                f.write(line)
        except OSError as e:
            print(f"Warning: could not write {query_log}: {e}")

    # ---------- Configuration ----------
    def load_site_prompt(self):
        path = os.path.join(self.cfg["ASKCLI_DIR"], "site_prompt.txt")
        if not os.path.exists(path):
            return ""
        with open(path, "r") as f:
            return f.read().strip()

    def load_site_secret_key(self):
        """
        Loads the site secret key from $ASKCLI_DIR/site_key.txt.
        Returns the key as a string, or None if missing or unreadable.
        """
        key_path = os.path.join(self.cfg["ASKCLI_DIR"], "site_key.txt")
        try:
            with open(key_path, "r") as f:
                key = f.read().strip()
                if not key:
                    print("Error: site_key.txt is empty.")
                    return None
                return key
        except FileNotFoundError:
            print(f"Error: site_key.txt not found in {self.cfg['ASKCLI_DIR']}.")
            return None
        except OSError as e:
            print(f"Error reading site_key.txt: {e}")
            return None

    def get_provider_config(self):
        cfg = self.get_env_config()
        return {
            "provider": cfg["ASKCLI_PROVIDER"],
            "key": cfg["ASKCLI_API_KEY"],
            "model": cfg["ASKCLI_MODEL"],
        }

    def get_env_config(self):
        """
        Load configuration in this priority order:
            1. Internal Python defaults
            2. User OS environment variable for ASKCLI_DIR
            3. Site defaults from $ASKCLI_DIR/site_defaults.txt
            4. User OS environment variables for any ASKCLI_* key
        The API key then falls back to ASKCLI_TOKEN, GEMINI_API_KEY and
        GOOGLE_API_KEY in that order.
        """
        if self.cfg is not None:
            return self.cfg

        cfg = {
            "ASKCLI_DIR": os.path.expanduser("~/.askcli"),
            "ASKCLI_PROVIDER": "gemini",
            "ASKCLI_MODEL": "gemini-2.0-flash",
            "ASKCLI_API_KEY": "",
            "ASKCLI_TOKEN": "",
            "ASKCLI_USER_PROMPT": "",
            "ASKCLI_LOG_DIR": "",
            "ASKCLI_LOG_IDENTITY": "username",
            "ASKCLI_DEBUG": "",
        }

        if "ASKCLI_DIR" in os.environ:
            cfg["ASKCLI_DIR"] = os.environ["ASKCLI_DIR"]

        defaults_path = os.path.join(cfg["ASKCLI_DIR"], "site_defaults.txt")
        if os.path.exists(defaults_path):
            try:
                with open(defaults_path, "r") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#"):
                            continue
                        if "=" in line:
                            key, val = line.split("=", 1)
                            key = key.strip()
                            val = val.strip()
                            if val.startswith('"') and val.endswith('"'):
                                val = val[1:-1]
                            cfg[key] = val
            except OSError as e:
                print(f"Warning: could not read site_defaults.txt: {e}")

        for key in cfg.keys():
            if key in os.environ:
                cfg[key] = os.environ[key]

        self.cfg = cfg
        self.debug = cfg["ASKCLI_DEBUG"].lower() in ("1", "true", "yes")

        if not cfg["ASKCLI_API_KEY"] and cfg["ASKCLI_TOKEN"]:
            secret_key = self.load_site_secret_key()
            if secret_key:
                username, key = decrypt_token( secret_key, cfg["ASKCLI_TOKEN"] )
                if key and username == current_username():
                    cfg["ASKCLI_API_KEY"] = key
                else:
                    print("Warning: ASKCLI_TOKEN is invalid for this user.")
        if not cfg["ASKCLI_API_KEY"]:
            cfg["ASKCLI_API_KEY"] = (os.environ.get("GEMINI_API_KEY")
                                     or os.environ.get("GOOGLE_API_KEY") or "")
        return cfg


def current_username():
    try:
        return getpass.getuser()
    except Exception:
        return os.environ.get("USER") or os.environ.get("USERNAME") or "unknown"



# Abstract base provider class. This defines the contract.
# send_message returns the reply text or raises ai_request_error.
class ai_provider:
    def open_session(self):
        raise NotImplementedError

    def close_session(self):
        raise NotImplementedError

    def send_message(self, prompt):
        raise NotImplementedError


class gemini_provider(ai_provider):
    def __init__(self, parent):
        self.parent = parent
        self.client = None
        self.chat = None
        self.api_key = parent.cfg["ASKCLI_API_KEY"]
        self.model = parent.cfg["ASKCLI_MODEL"]
        self.debug = parent.debug

    def system_instruction(self):
        parts = [self.parent.load_site_prompt(), self.parent.cfg.get("ASKCLI_USER_PROMPT", "")]
        return "\n".join( p for p in parts if p )

    def open_session( self ):
        if self.debug:
            print("open_session(gemini:%s)" % self.model )
        from google import genai
        from google.genai import types

        try:
            self.client = genai.Client(api_key=self.api_key)
        except Exception as e:
            raise ai_credential_error(f"{type(e).__name__}: {e}") from e
        config = None
        instruction = self.system_instruction()
        if instruction:
            config = types.GenerateContentConfig(system_instruction=instruction)
        self.chat = self.client.chats.create(model=self.model, config=config)

    def close_session( self ):
        if self.debug:
            print("close_session(gemini)")
        self.chat = None
        self.client = None

    def send_message(self, prompt ):
        if self.debug:
            print("send_message(gemini) %d chars" % len(prompt) )
        try:
            response = self.chat.send_message( prompt )
        except Exception as e:
            raise ai_request_error(f"{type(e).__name__}: {e}") from e
        text = response.text
        if not text or not text.strip():
            raise ai_request_error("empty response from model")
        if self.debug:
            print("chat.send_message(gemini) \nA: %s" % text.strip() )
        return text.strip()


# ---------- Dispatch ----------
HANDLERS = {
    CMD_OVERWRITE: "handle_overwrite",
    CMD_CHECKFILE: "check_file",
    CMD_DEBUG:     "debug_file",
    CMD_FILE:      "add_file_context",
    CMD_ASK:       "ask_question",
}


def dispatch(ai, session, command) -> bool:
    """Run the handler for command. Returns False once the session should end."""
    if command.kind == CMD_EXIT:
        return False
    handler = getattr(ai, HANDLERS[command.kind])
    try:
        handler( session, command.arg )
    except (ai_request_error, OSError) as e:
        print(colored("Error: ", ANSI_RED) + str(e))
    except Exception as e:
        print(colored("Error: ", ANSI_RED) + f"{type(e).__name__}: {e}")
    return True


# ---------- Readline Completion ----------
class suggestion_pager:
    """Readline completer and display hook over suggest()."""

    def __init__(self, session, readline_mod):
        self.session = session
        self.readline = readline_mod
        self.matches: List[Suggestion] = []
        self.offered: List[str] = []
        self.last_buffer = None
        self.offset = 0

    def insertable(self, text):
        """
        What readline may put on the line for text.

        Readline replaces the line with the longest common prefix of the
        returned matches, so substring hits that do not all start with text
        are offered as text itself plus a padded twin. The line stays as
        typed and the display hook lists the real suggestions.
        """
        texts = [s.text for s in self.matches if s is not SUGGESTION_SEPARATOR]
        if len(texts) > 1 and not all(t.startswith(text) for t in texts):
            return [text, text + " "]
        return texts

    def complete(self, text, state):
        if state == 0:
            buffer = self.readline.get_line_buffer()
            self.matches = suggest(self.session.history, buffer)
            self.offered = self.insertable(text)
        if state < len(self.offered):
            return self.offered[state]
        return None

    def display(self, substitution, matches, longest_match_length):
        buffer = self.readline.get_line_buffer()
        if buffer == self.last_buffer and self.offset + PAGE_SIZE < len(self.matches):
            self.offset += PAGE_SIZE
        else:
            self.offset = 0
        self.last_buffer = buffer
        page = self.matches[self.offset:self.offset + PAGE_SIZE]
        print()
        for item in page:
            if item is SUGGESTION_SEPARATOR:
                print(colored("  " + item.text, ANSI_BLUE))
            else:
                print("  " + item.text)
        remaining = len(self.matches) - self.offset - len(page)
        if remaining > 0:
            print(colored(f"  ({remaining} more, Tab again to scroll)", ANSI_BLUE))
        print(format_prompt() + buffer, end="", flush=True)


def init_readline(session):
    """Hook suggest() into readline. Returns the readline module or None."""
    try:
        import readline  # type: ignore
    except ImportError:
        return None
    pager = suggestion_pager(session, readline)
    try:
        readline.set_completer(pager.complete)
        readline.set_completer_delims("\n")
        readline.set_completion_display_matches_hook(pager.display)
        readline.parse_and_bind("tab: complete")
    except Exception as e:
        print(f"Note: tab completion unavailable: {e}")
    return readline


# ---------- Prompt ----------
def format_prompt() -> str:
    return f"Ask {BOT_NAME} (or type 'exit' to quit): "


# ---------- Version ----------
def print_version( self ):
    import textwrap

    cfg = self.get_env_config()

    version_text = f"""
    askcli : terminal assistant powered by {BOT_NAME}
    Version: {ASKCLI_VERSION}

    Current Configuration
      ASKCLI_DIR:          {cfg.get("ASKCLI_DIR")}
      ASKCLI_PROVIDER:     {cfg.get("ASKCLI_PROVIDER")}
      ASKCLI_MODEL:        {cfg.get("ASKCLI_MODEL")}
      ASKCLI_LOG_DIR:      {cfg.get("ASKCLI_LOG_DIR") or "<not set>"}
      ASKCLI_LOG_IDENTITY: {cfg.get("ASKCLI_LOG_IDENTITY")}

    License
      This program is free software: you can redistribute it and/or modify
      it under the terms of the GNU General Public License as published by
      the Free Software Foundation, version 3 or later.
    """

    print(textwrap.dedent(version_text).rstrip())


# ---------- Help Manual ----------
def print_help(self):
    import textwrap

    cfg = self.get_env_config()

    help_text = f"""
    Usage: askcli [options] [checkfile <path> | debug <path> | question...]

    Options:
      -h, --help        Show this help message and exit
      -v, --version     Show version and configuration information

    Session Commands:
      checkfile <path>  Send a file to {BOT_NAME} for analysis
      debug <path>      Ask for bugs and fixes, then offer to rewrite the file
      file <path>       Load a file as context for later questions
      overwrite         Rewrite the last analyzed file (saves <file>{BACKUP_SUFFIX})
      exit              Quit (Ctrl+C and Ctrl+D also quit)
      anything else     Asked as a question
      Tab               Suggest earlier questions and file paths

    AI Configuration:
      Provider:    {cfg.get("ASKCLI_PROVIDER")}
      Model:       {cfg.get("ASKCLI_MODEL")}
      API Key:     {'<set>' if cfg.get('ASKCLI_API_KEY') else '<not set>'}

    Environment Variables:
      ASKCLI_DIR           Base directory for site configuration
      ASKCLI_PROVIDER      AI provider name (default: gemini)
      ASKCLI_MODEL         Model name for the provider
      ASKCLI_API_KEY       Raw API key (GEMINI_API_KEY is also accepted)
      ASKCLI_TOKEN         Encrypted API token (site-managed)
      ASKCLI_USER_PROMPT   Optional instruction added to every session
      ASKCLI_LOG_DIR       Directory for the usage log (off when unset)
      ASKCLI_LOG_IDENTITY  'username' or 'process'
      ASKCLI_DEBUG         Print tracing output

    Examples:
      askcli
      askcli checkfile src/app.js
      askcli debug sample.js
      askcli "what does a closure capture?"
    """

    print(textwrap.dedent(help_text).rstrip())
    print()


# --- Main REPL (Read-Eval-Print Loop) ---
def run_session(ai, session, first_command=None):
    """Read, classify and dispatch one line at a time until exit."""
    readline_mod = init_readline(session) if sys.stdin.isatty() else None
    try:
        if first_command is not None:
            dispatch(ai, session, first_command)
        while True:
            try:
                line = input(format_prompt())
            except EOFError:
                print()
                break
            if not line.strip():
                continue
            if readline_mod is not None:
                readline_mod.add_history(line)
            if not dispatch(ai, session, classify(line)):
                break
    except KeyboardInterrupt:
        print()
    print(colored("Goodbye!", ANSI_BLUE))


def command_from_argv(args: List[str]) -> Optional[Command]:
    if not args:
        return None
    kind = args[0].lower()
    if kind in (CMD_CHECKFILE, CMD_DEBUG) and len(args) > 1:
        return Command(kind, args[1])
    return Command(CMD_ASK, " ".join(args))


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    load_dotenv(os.path.join(os.getcwd(), ".env"))
    load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

    ai = api_askcli()

    try:
        return run_main(ai, argv)
    except KeyboardInterrupt:
        print()
        print(colored("Goodbye!", ANSI_BLUE))
        return 0


def run_main(ai, argv) -> int:
    if "--help" in argv or "-h" in argv:
        print_help( ai )
        return 0

    if "--version" in argv or "-v" in argv:
        print_version( ai )
        return 0

    try:
        ai.open_ai_session()
    except ai_credential_error as e:
        print(colored("Error: ", ANSI_RED) + str(e), file=sys.stderr)
        return 1

    print(colored(f"Welcome to askcli (powered by {BOT_NAME})", ANSI_GREEN))
    session = askcli_session()
    run_session(ai, session, command_from_argv(argv))
    ai.close_ai_session()
    return 0


if __name__ == "__main__":
    sys.exit(main())
