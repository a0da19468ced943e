# mailtemp

A self-hosted temporary mailbox service. It runs its own SMTP receiver,
hands out random addresses on your domain, stores incoming mail in memory or
in Redis, and pulls verification codes out of each message. A JSON API and a
web page let you create addresses and read what arrived.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
```

## Running

```
mailtemp [--template-dir DIR] [--static-dir DIR]
```

This starts the SMTP receiver in the background and then the web server on
all interfaces. `--template-dir` (default `web/templates`) must hold an
`index.html` Jinja template; it is rendered for `/` with a `title` variable.
`--static-dir` (default `web/static`) is served under `/static`. If the
template directory holds no `.html` file, the command logs an error and
exits with status 1.

Settings come from environment variables:

| Variable         | Default       | Meaning                                         |
|------------------|---------------|-------------------------------------------------|
| `MAIL_DOMAIN`    | `example.com` | Domain used for generated addresses             |
| `WEB_PORT`       | `8080`        | Port of the web server and API                  |
| `SMTP_PORT`      | `25`          | Port of the built-in SMTP receiver              |
| `DEBUG_MODE`     | `false`       | Run the web server in debug mode (`1`, `t`, `true` and the like) |
| `REDIS_URL`      | *(empty)*     | Store mail in Redis; memory is used if unset or unreachable |
| `OLLAMA_API_URL` | *(empty)*     | Model endpoint used when a code can't be found by pattern |
| `HOST_ADDRESS`   | *(empty)*     | Host of the model endpoint when `OLLAMA_API_URL` is unset |

A malformed port number is read as 0. A non-positive `SMTP_PORT` falls back
to 25.

The SMTP receiver accepts every recipient, but a message is kept only when
its first recipient is an address that has been created and not deleted.
In Redis, addresses and their mail expire after 24 hours. Messages are
limited to 1 MiB and 50 recipients.

Port 25 usually needs elevated privileges. Set `SMTP_PORT=2525` for local use
and point your test sender at it. With the default `example.com` domain,
mail from outside servers won't reach you, so set `MAIL_DOMAIN` to a domain
whose MX record points at this host.

## Verification codes

Each received message is searched for a code: first by labels such as
`code` or `验证码` followed by 4 to 8 digits, then for any 4 to 8 digit
number that is not a year from 2020 to 2030. When nothing matches and the
text is long enough, the first 3000 bytes are sent to an Ollama
`/api/generate` endpoint (model `gemma3:1b`), tried twice with a 5 second
timeout. Without `OLLAMA_API_URL` or `HOST_ADDRESS`, the endpoint defaults to
port 11434 on the Docker bridge address `172.17.0.1`. If the model cannot
be reached, the message simply has no code.

## HTTP API

| Method   | Path                          | Result                                              |
|----------|-------------------------------|-----------------------------------------------------|
| `GET`    | `/api/email/new`              | `{"status": "success", "email": "…"}`               |
| `GET`    | `/api/email/<email>/messages` | Messages for that address, with `count`             |
| `GET`    | `/api/email/list`             | Up to 15 active addresses, with `count`             |
| `DELETE` | `/api/email/<email>`          | Removes the address and its mail                    |

An unknown or already deleted address gets HTTP 400 with
`{"status": "error", ...}`.

Each message has `from`, `to`, `subject`, `body` (the raw message) and an
RFC 3339 `timestamp`. It also has `htmlContent` when an HTML part was found
and `code` when a verification code was extracted.

## Using it from Python

```python
from mailtemp.config import load_config
from mailtemp.factory import create_storage
from mailtemp.generator import EmailGenerator
from mailtemp.codes import extract_verification_code

config = load_config({"MAIL_DOMAIN": "example.com"})
storage = create_storage(config)
generator = EmailGenerator(config.mail_domain, storage)

address = generator.generate_email()
assert generator.is_valid_email(address)

print(extract_verification_code("Your code: 482913"))  # 482913
```

The modules:

- `mailtemp.config` – `Config` and `load_config(environ)`.
- `mailtemp.storage` – `EmailMessage`, the `EmailStorage` protocol and
  `MemoryStorage`.
- `mailtemp.redis_storage` – `RedisStorage`, built with `RedisStorage.from_url(url)`.
- `mailtemp.factory` – `create_storage(config)`.
- `mailtemp.generator` – `EmailGenerator`, `generate_random_string`, `username_of`.
- `mailtemp.mailparse` – subject, header and body decoding helpers.
- `mailtemp.codes` – `extract_verification_code`,
  `extract_verification_code_fallback`, `extract_code_with_ai`, `ollama_api_url`.
- `mailtemp.smtpserver` – `Mail`, `SMTPSession` and `SMTPServer`.
- `mailtemp.receiver` – `EmailReceiver`, which runs the SMTP server and files mail.
- `mailtemp.api`, `mailtemp.web`, `mailtemp.app` – the Flask application
  (`create_app`) and the `main` entry point.

## What it does not do

- It ships no web templates or static files; provide your own `index.html`.
- It only receives mail: it does not send or relay messages.
- The SMTP receiver offers no TLS or STARTTLS, and `AUTH PLAIN` is accepted
  without checking any credentials.