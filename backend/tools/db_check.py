import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
NUMBER = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

if not NUMBER:
    print("=== Recent Credit Notes ===")
    cur.execute(
        "SELECT id, number, status, total_amount, invoice_id, created_at FROM credit_notes ORDER BY id DESC LIMIT 20"
    )
    for r in cur.fetchall():
        print(r)
    conn.close()
    sys.exit(0)

cur.execute(
    "SELECT id, number, status, subtotal, vat_amount, total_amount, invoice_id FROM credit_notes WHERE number=?",
    (NUMBER,),
)
cn = cur.fetchone()
if not cn:
    print("Credit note not found:", NUMBER)
    conn.close()
    sys.exit(1)
print("=== Credit Note ===")
print(
    {
        "id": cn[0],
        "number": cn[1],
        "status": cn[2],
        "subtotal": cn[3],
        "vat_amount": cn[4],
        "total_amount": cn[5],
        "invoice_id": cn[6],
    }
)

print("\n=== Lines ===")
cur.execute(
    "SELECT product_id, uom, quantity, units_per_box, total_qty, unit_price_incl_vat, line_total FROM credit_note_lines WHERE credit_note_id=? ORDER BY id",
    (cn[0],),
)
for r in cur.fetchall():
    print(r)

print("\n=== Stock Movements ===")
cur.execute(
    "SELECT id, product_id, movement_type, quantity, quantity_grams, reference, movement_date FROM stock_movements WHERE reference IN (?, ?, ?) ORDER BY id",
    (NUMBER, NUMBER + ":reverse", NUMBER + ":restore"),
)
for r in cur.fetchall():
    print(r)

if cn[6]:
    print("\n=== Linked Invoice ===")
    cur.execute(
        "SELECT id, invoice_number, status, total_amount, amount_paid, credits_applied, balance_remaining FROM invoices WHERE id=?",
        (cn[6],),
    )
    print(cur.fetchone())

print("\n=== Audit Trail ===")
cur.execute(
    "SELECT id, action, actor_id, meta, created_at FROM audit_logs WHERE entity='credit_notes' AND entity_id=? ORDER BY id",
    (cn[0],),
)
for r in cur.fetchall():
    meta = r[3]
    try:
        meta = json.loads(meta) if isinstance(meta, str) else meta
    except ValueError:
        pass
    print({"id": r[0], "action": r[1], "actor_id": r[2], "meta": meta, "created_at": r[4]})

conn.close()
