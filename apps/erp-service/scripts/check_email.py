#!/usr/bin/env python3
"""
Transactional email check.

- Validates the provider configuration (Resend, SendGrid, Mailgun)
- Renders the task_assigned template
- Sends a sample task email when TEST_EMAIL is set

Run with: python scripts/check_email.py
"""

import asyncio
import os
import sys
from datetime import datetime, UTC
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from erp.services.transactional_email_service import TransactionalEmailService, TransactionalEmailConfig

SAMPLE_CONTEXT = {
    'task_title': 'Check hydraulic press calibration',
    'task_description': 'Verify pressure readings against the batch sheet.',
    'priority_label': 'High',
    'due_date': '2025-01-31',
    'assigner_name': 'Operations Manager',
    'assignee_name': 'Line Operator',
    'task_url': 'http://localhost:8080/tasks/sample',
    'company_name': os.getenv('COMPANY_NAME', 'Revium ERP'),
    'support_email': os.getenv('SUPPORT_EMAIL', ''),
    'current_year': datetime.now(UTC).year,
}


def check_configuration() -> bool:
    config = TransactionalEmailConfig()
    print(f"Selected Provider: {config.provider.value}")
    print(f"From: {config.sender}")
    print(f"Template Dir: {config.template_dir}")
    problems = config.validate()
    if problems:
        print("Email service not fully configured:")
        for problem in problems:
            print(f"   - {problem}")
        return False
    print("Email configuration looks good")
    return True


def check_templates(service: TransactionalEmailService) -> bool:
    html_content, text_content = service.render_template('task_assigned', SAMPLE_CONTEXT)
    print(f"task_assigned rendered: html={len(html_content)} chars, text={len(text_content)} chars")
    return True


async def check_sending(service: TransactionalEmailService) -> bool:
    test_email = os.getenv('TEST_EMAIL')
    if not test_email:
        print("Skipping send. Set TEST_EMAIL to send a sample task email.")
        return True
    html_content, text_content = service.render_template('task_assigned', SAMPLE_CONTEXT)
    result = await service.send_email(
        to_email=test_email,
        subject=f"[TEST] New Task Assigned: {SAMPLE_CONTEXT['task_title']}",
        html_content=html_content,
        text_content=text_content,
    )
    if result['success']:
        print(f"Sample email sent to {test_email} (message id {result.get('message_id', 'N/A')})")
        return True
    print(f"Email sending failed: {result['error']}")
    return False


async def main() -> int:
    configured = check_configuration()
    service = TransactionalEmailService()
    ok = check_templates(service)
    if configured:
        ok = await check_sending(service) and ok
    return 0 if ok and configured else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
