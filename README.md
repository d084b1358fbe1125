# pbcli

Command-line automation for a project laid out with a Go server under
`cmd/server` (with `main.go` and a `go.mod` at the project root) and an optional
frontend under `frontend/`. `pbcli` checks the toolchain, builds the frontend
into `pb_public/`, starts the development server, runs the Go test suite with
reports, and assembles a production bundle with metadata and a zip archive.

## Installation

```
pip install .
```

This installs the `pbcli` command.

## Usage

Run from the project root; the current directory is taken as the project root.

```
pbcli                 # check tools, build the frontend, then start the dev server
pbcli --install       # also install Go modules and npm packages before building
pbcli --build-only    # build frontend assets only
pbcli --run-only      # start the server without building
pbcli --test-only     # run the test suite and write reports to dist/test-reports
pbcli --production    # full production build into dist/
pbcli --production --dist release
pbcli --help
```

Options are accepted with one or two dashes (`-production` or `--production`).
When several mode options are given, `--test-only` wins over `--production`,
which wins over `--build-only`, which wins over `--run-only`. The command exits
with status 1 and prints the error when a step fails.

### Requirements

Go, Node.js, npm and Git must be on `PATH`. Every mode checks for them first
(the production mode after cleaning its output directory) and stops if one is
missing.

### Frontend detection

- No `frontend/` directory: the frontend step is skipped.
- `frontend/` without `package.json`: the files are copied into `pb_public/` as they are.
- `frontend/` with `package.json`: `npm run build` is run, `pb_public/` is
  emptied, and the first of `build/`, `dist/` or `static/` that exists is copied
  into it. If none exists but `frontend/` holds files directly, `frontend/` itself
  is copied.

With `--install`, `go mod tidy` and `go mod download` are run, then `npm ci`
(when `package-lock.json` exists) or `npm install` for an npm frontend.

### Development server

Before the server starts, `pbcli` checks that `cmd/server/main.go` exists,
creates `pb_public/` if needed and checks for `go.mod`. It then runs
`go run ./cmd/server --dev serve` in the foreground.

### Test mode

`--test-only` finds every directory holding `*_test.go` files (skipping hidden
directories and `vendor`, `node_modules`, `dist`, `pb_data`, `pb_public`,
`frontend`), runs `go test -v` on each and prints per-package counts and a
summary. Reports are written to `<dist>/test-reports/`:

- `test-summary.txt` — readable summary with the full test output
- `test-report.json` — the same as JSON
- `coverage.html`, `coverage-summary.txt` and `coverage.out` — from `go test -coverprofile`
  and `go tool cover` (skipped with a warning if coverage cannot be produced)

### Production output

`--production` removes and recreates the output directory (`dist/` by default,
or the one given with `--dist`) and writes into it:

- the server binary `pb-cli` (`pb-cli.exe` on Windows), built with `go build -ldflags "-s -w"`
- `pb_public/` with the frontend assets
- `build-info.txt` and `package-metadata.json` with tool versions and Git branch, commit and tag
- `test-reports/` as in test mode
- `pb-cli-production-<YYYYMMDD-HHMMSS>.zip`, a zip of the project's `dist/` directory

Failures in metadata, tests or archiving are reported as warnings and do not
stop the build. The archive is always made from `<project>/dist`, so with a
different `--dist` directory the archive step only succeeds if `dist/` also exists.

## Library use

The modules can be used directly; failures raise `pbcli.system.BuildError`.

- `pbcli.cli` — `main(argv=None)`, `build_parser()`
- `pbcli.build` — `FrontendType`, `detect_frontend_type`, `build_frontend`,
  `copy_frontend_to_dist`, `build_server_binary`, `find_build_directory`,
  `copy_dir`, `copy_file`, `install_dependencies`, `validate_dependencies` and more
- `pbcli.devserver` — `run_server`, `validate_server_setup`, `start_server_with_timeout`,
  `check_server_health`, `get_server_info`, `prepare_server_environment`
- `pbcli.testsuite` — `discover_test_packages`, `parse_test_output`, `run_test_suite`,
  `analyze_test_results`, report generators, `PackageResult`, `SuiteResult`
- `pbcli.archive` — `create_project_archive`, `generate_package_metadata`,
  `validate_archive`, `format_bytes`
- `pbcli.production` — `production_build`, `validate_production_build`,
  `clean_production_build`, `count_files_in_dir`, `calculate_original_size`
- `pbcli.system` — `check_command`, `get_command_output`, `check_system_requirements`
- `pbcli.console` — coloured output helpers and `format_duration`
- `pbcli.logsupport` — `LogLevel`, `LogContext`, `ErrorResponse` (JSON shape with
  `to_dict`, `to_json`, `from_dict`), `should_exclude_from_logging`, `is_browser`,
  `wants_html`

## What it does not do

`pbcli` does not contain the server or an HTTP framework: it builds and runs the
Go server of the project it is pointed at. `pbcli.logsupport` holds only the
log-level, request-context and error-response types and the browser/HTML
checks; it does not install request logging, error pages or panic recovery in
any server.

## Development

```
pip install -e ".[test]"
pytest
```