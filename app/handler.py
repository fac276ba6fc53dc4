from mangum import Mangum
from app.main import app

# Lambda エントリポイント（API Gateway / Function URL）
handler = Mangum(app, lifespan="off")
