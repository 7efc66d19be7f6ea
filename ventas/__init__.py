# ventas - API de ventas e inventario
