"""
Budget Review Dashboard

A stateless Flask tool for reviewing how bank exports are categorized and
which payees are detected as bills. Uploaded Monzo CSV exports are processed
in memory through the budget pipeline; nothing is stored between requests.
"""

import csv
import io
import json
import logging
import os
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, request, jsonify, send_file
from werkzeug.utils import secure_filename

from budget_engine import (
    BudgetPipeline,
    ConfigurationError,
    NoValidRowsError,
    PipelineConfig,
    PipelineResult,
    Timeframe,
    __version__,
)


app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max upload

# Column order for the transaction CSV export
EXPORT_FIELDS = [
    'id', 'date', 'month_key', 'day', 'name', 'payee_normalized', 'type',
    'amount', 'amount_abs', 'direction', 'provider_category', 'notes',
    'account_label', 'source_file', 'category_final', 'category_group',
    'is_bill_rule', 'confidence_score', 'confidence_reason', 'rule_id_applied',
    'is_internal_transfer', 'is_spend', 'is_bill_candidate', 'bill_status',
    'required_amount_exact', 'typical_day',
]


@lru_cache(maxsize=1)
def get_pipeline() -> BudgetPipeline:
    """Pipeline built once from BUDGET_* environment settings."""
    return BudgetPipeline(PipelineConfig.from_env())


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() == 'csv'


def parse_json_field(name: str, expected_type: type, default: Any) -> Any:
    """
    Read an optional JSON-encoded form field.

    Raises:
        ValueError: If the field is not valid JSON of the expected type
    """
    raw = request.form.get(name, '').strip()
    if not raw:
        return default
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"'{name}' is not valid JSON: {e}") from e
    if not isinstance(value, expected_type):
        raise ValueError(f"'{name}' must be a JSON {expected_type.__name__}")
    return value


class UploadError(Exception):
    """An upload request that cannot be processed; carries the HTTP status."""

    def __init__(self, message: str, status: int = 400, details: Optional[List[Dict]] = None):
        super().__init__(message)
        self.status = status
        self.details = details


def read_uploaded_sources() -> Tuple[List[Tuple[str, bytes]], List[Dict]]:
    """
    Collect CSV uploads from the 'files' form field.

    Returns:
        Tuple of ((file_name, content) pairs, per-file errors for skipped files)

    Raises:
        UploadError: If no usable CSV file was sent
    """
    if 'files' not in request.files:
        raise UploadError('No files provided')

    files = request.files.getlist('files')

    if not files or all(f.filename == '' for f in files):
        raise UploadError('No files selected')

    sources = []
    errors = []
    for file in files:
        if file and file.filename and allowed_file(file.filename):
            sources.append((secure_filename(file.filename), file.read()))
        elif file and file.filename:
            errors.append({
                'filename': file.filename,
                'error': 'Invalid file type. Only CSV files are allowed.'
            })

    if not sources:
        raise UploadError('No valid CSV files', details=errors)

    return sources, errors


def process_upload() -> Tuple[PipelineResult, Timeframe, int, List[Dict]]:
    """
    Run the pipeline over the uploaded files and form options.

    Form fields:
        files: one or more CSV files; the first is the personal account
        timeframe: this_month, last_3 or all (default all)
        payee_overrides: JSON object of payee -> category
        bill_overrides: JSON list of {payee_normalized, action, custom_*}

    Raises:
        UploadError: 400 for bad input, 500 for a broken rules configuration
    """
    sources, errors = read_uploaded_sources()
    try:
        timeframe = Timeframe.parse(request.form.get('timeframe') or None)
        payee_overrides = parse_json_field('payee_overrides', dict, {})
        bill_overrides = parse_json_field('bill_overrides', list, [])
        result = get_pipeline().run_csv(sources, payee_overrides, bill_overrides)
    except (NoValidRowsError, ValueError) as e:
        app.logger.warning(f"Upload rejected: {e}")
        raise UploadError(str(e)) from e
    except ConfigurationError as e:
        app.logger.error(f"Pipeline configuration error: {e}")
        raise UploadError(f'Configuration error: {e}', status=500) from e

    app.logger.info(
        f"Processed {len(sources)} files: {result.stats.transactions_stored} transactions"
    )
    return result, timeframe, len(sources), errors


def upload_error_response(e: UploadError):
    """JSON error body for a rejected upload."""
    body = {'error': str(e)}
    if e.details is not None:
        body['details'] = e.details
    return jsonify(body), e.status


@app.route('/')
def index():
    """Service information."""
    return jsonify({
        'service': 'Budget Review Dashboard',
        'version': __version__,
        'timeframes': [t.value for t in Timeframe],
        'endpoints': ['/upload', '/export/csv', '/export/json'],
    })


@app.route('/upload', methods=['POST'])
def upload_files():
    """
    Process uploaded Monzo CSV exports.

    Returns JSON with processed transactions, bills and variable spending.
    """
    try:
        result, timeframe, files_processed, errors = process_upload()
    except UploadError as e:
        return upload_error_response(e)

    response = {
        'success': True,
        'files_processed': files_processed,
        **result.to_dict(timeframe),
        'errors': errors if errors else None,
    }
    return jsonify(response)


@app.route('/export/csv', methods=['POST'])
def export_csv():
    """
    Process uploaded Monzo CSV exports and download the categorized
    transactions as CSV, one row per stored transaction.
    """
    try:
        result, timeframe, _, _ = process_upload()
    except UploadError as e:
        return upload_error_response(e)

    rows = result.to_dict(timeframe)['transactions']

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS)
    writer.writeheader()
    writer.writerows(rows)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    app.logger.info(f"CSV export: {len(rows)} transactions")

    return send_file(
        io.BytesIO(output.getvalue().encode('utf-8')),
        mimetype='text/csv',
        as_attachment=True,
        download_name=f'budget_transactions_{timestamp}.csv'
    )


@app.route('/export/json', methods=['POST'])
def export_json():
    """
    Process uploaded Monzo CSV exports and download the full result
    (stats, transactions, bills and variable spending) as JSON.
    """
    try:
        result, timeframe, _, _ = process_upload()
    except UploadError as e:
        return upload_error_response(e)

    data = result.to_dict(timeframe)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    app.logger.info(
        f"JSON export: {len(data['transactions'])} transactions, "
        f"{len(data['bills']['bills'])} bills"
    )

    return send_file(
        io.BytesIO(json.dumps(data, indent=2).encode('utf-8')),
        mimetype='application/json',
        as_attachment=True,
        download_name=f'budget_summary_{timestamp}.json'
    )


if __name__ == '__main__':
    logging.basicConfig(
        level=os.environ.get('BUDGET_LOG_LEVEL', 'INFO').upper(),
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    print("=" * 80)
    print("Budget Review Dashboard")
    print("=" * 80)
    print("\nStarting dashboard on http://localhost:5001")
    print("Uploads are processed in memory; nothing is stored.")
    print("\nPress Ctrl+C to stop the server.")
    print("=" * 80)

    # Set FLASK_DEBUG=1 only in development environments
    debug_mode = os.environ.get('FLASK_DEBUG', '0') == '1'
    app.run(debug=debug_mode, port=5001, host='0.0.0.0')
