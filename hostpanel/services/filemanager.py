"""File Manager deep links.

The hosted file manager accepts the account password XOR-ed with a fixed
key and Base64-encoded, so users land logged in without retyping it.
"""

import base64
from urllib.parse import quote

FILEMANAGER_URL = "https://filemanager.ai/new3/index.php"
FM_KEY = "ERFgjowETHGj9wf"


def _uri_component(value):
    # Same escaping as JavaScript's encodeURIComponent
    return quote(value, safe="-_.!~*'()")


def encode_password(password, key=FM_KEY):
    xored = "".join(
        chr(ord(ch) ^ ord(key[i % len(key)])) for i, ch in enumerate(password)
    )
    return base64.b64encode(xored.encode("latin-1")).decode("ascii")


def build_filemanager_link(vp_username, password, directory="/htdocs/"):
    link = (
        f"{FILEMANAGER_URL}?u={_uri_component(vp_username)}"
        f"&p={_uri_component(encode_password(password))}"
    )
    if directory:
        link += f"&home={_uri_component(directory)}"
    return link
