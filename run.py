"""
B2B rewards platform entry point.
"""
import os
import sys
import traceback

print("[B2BRewards] ========================================")
print("[B2BRewards] Starting B2B Rewards v1.0.0")
print("[B2BRewards] ========================================")

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[B2BRewards] Config: {config_name}")
print(f"[B2BRewards] PORT: {os.getenv('PORT', 'not set')}")
print(f"[B2BRewards] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")

try:
    from b2b_rewards import create_app
    app = create_app(config_name)
    print(f"[B2BRewards] Routes: {len(list(app.url_map.iter_rules()))}")
except Exception as e:
    print(f"[B2BRewards] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
