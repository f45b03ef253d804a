from django.conf import settings
from django.db import migrations

FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION transactions_notify() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(
        %(channel)s,
        (jsonb_build_object('event', TG_OP) || to_jsonb(NEW))::text
    );
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

DROP_TRIGGER_SQL = (
    "DROP TRIGGER IF EXISTS transactions_notify_trigger ON transactions_transaction;"
)

TRIGGER_SQL = """
CREATE TRIGGER transactions_notify_trigger
AFTER INSERT OR UPDATE ON transactions_transaction
FOR EACH ROW EXECUTE FUNCTION transactions_notify();
"""


def create_notify_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    channel = getattr(settings, "TRANSACTIONS_NOTIFY_CHANNEL", "transactions_channel")
    # Plain string literal: the function body is not a bound query.
    literal = "'" + channel.replace("'", "''") + "'"
    schema_editor.execute(FUNCTION_SQL.replace("%(channel)s", literal), params=None)
    schema_editor.execute(DROP_TRIGGER_SQL, params=None)
    schema_editor.execute(TRIGGER_SQL, params=None)


def drop_notify_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(DROP_TRIGGER_SQL, params=None)
    schema_editor.execute("DROP FUNCTION IF EXISTS transactions_notify();", params=None)


class Migration(migrations.Migration):

    dependencies = [
        ("transactions", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_notify_trigger, drop_notify_trigger),
    ]
